"""Tests for the reCAPTCHA, SendGrid and Facebook clients against stubbed transports."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from rainy_day.core.outcome import ConfirmationEmail
from rainy_day.integrations.facebook import FacebookAuthError, FacebookProfileClient
from rainy_day.integrations.mailer import ConfirmationMailer
from rainy_day.integrations.recaptcha import RecaptchaError, RecaptchaVerifier


def _transport(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.MockTransport:
    return httpx.MockTransport(handler)


# ═══════════════════════════════════════════════════════════════════════
# reCAPTCHA
# ═══════════════════════════════════════════════════════════════════════


class TestRecaptchaVerifier:
    @pytest.mark.asyncio
    async def test_success(self, test_cfg: Any) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True})

        verifier = RecaptchaVerifier(test_cfg.recaptcha, transport=_transport(handler))
        await verifier.verify("tok")

        body = seen[0].content.decode()
        assert "response=tok" in body
        assert "secret=captcha-secret" in body

    @pytest.mark.asyncio
    async def test_reported_failure_lists_error_codes(self, test_cfg: Any) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"success": False, "error-codes": ["invalid-input-response", "bad-request"]}
            )

        verifier = RecaptchaVerifier(test_cfg.recaptcha, transport=_transport(handler))
        with pytest.raises(RecaptchaError, match="invalid-input-response, bad-request"):
            await verifier.verify("tok")

    @pytest.mark.asyncio
    async def test_failure_without_codes(self, test_cfg: Any) -> None:
        verifier = RecaptchaVerifier(
            test_cfg.recaptcha,
            transport=_transport(lambda r: httpx.Response(200, json={"success": False})),
        )
        with pytest.raises(RecaptchaError, match="Unknown"):
            await verifier.verify("tok")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [["success"], "ok", 1])
    async def test_non_object_body(self, test_cfg: Any, payload: Any) -> None:
        verifier = RecaptchaVerifier(
            test_cfg.recaptcha,
            transport=_transport(lambda r: httpx.Response(200, json=payload)),
        )
        with pytest.raises(RecaptchaError, match="not a JSON object"):
            await verifier.verify("tok")

    @pytest.mark.asyncio
    async def test_non_200(self, test_cfg: Any) -> None:
        verifier = RecaptchaVerifier(
            test_cfg.recaptcha, transport=_transport(lambda r: httpx.Response(503))
        )
        with pytest.raises(RecaptchaError, match="status code 503"):
            await verifier.verify("tok")

    @pytest.mark.asyncio
    async def test_unreachable(self, test_cfg: Any) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        verifier = RecaptchaVerifier(test_cfg.recaptcha, transport=_transport(handler))
        with pytest.raises(RecaptchaError, match="connection refused"):
            await verifier.verify("tok")


# ═══════════════════════════════════════════════════════════════════════
# SendGrid
# ═══════════════════════════════════════════════════════════════════════


class TestConfirmationMailer:
    def test_link_uses_request_host(self, test_cfg: Any) -> None:
        mailer = ConfirmationMailer(test_cfg.mail)
        assert mailer.confirmation_link("abc", "rainy.example") == "https://rainy.example/confirm/abc"

    @pytest.mark.asyncio
    async def test_sends_template_message(self, test_cfg: Any) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(202)

        mailer = ConfirmationMailer(test_cfg.mail, transport=_transport(handler))
        await mailer.send(ConfirmationEmail(to="a@b.c", confirmation_id="abc"), "rainy.example")

        request = seen[0]
        assert request.headers["Authorization"] == "Bearer sg-key"
        payload = json.loads(request.content)
        assert payload["template_id"] == "tmpl-123"
        assert payload["from"] == {"email": "info@black.insure"}
        personalization = payload["personalizations"][0]
        assert personalization["to"] == [{"email": "a@b.c"}]
        assert personalization["substitutions"]["<%confirmationLink%>"] == (
            "https://rainy.example/confirm/abc"
        )

    @pytest.mark.asyncio
    async def test_delivery_failure_is_logged_not_raised(self, test_cfg: Any) -> None:
        mailer = ConfirmationMailer(
            test_cfg.mail, transport=_transport(lambda r: httpx.Response(401))
        )
        await mailer.send(ConfirmationEmail(to="a@b.c", confirmation_id="abc"), "rainy.example")


# ═══════════════════════════════════════════════════════════════════════
# Facebook
# ═══════════════════════════════════════════════════════════════════════


class TestFacebookProfileClient:
    @pytest.mark.asyncio
    async def test_fetches_profile(self, test_cfg: Any) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith("/me")
            assert request.url.params["access_token"] == "fb-token"
            return httpx.Response(200, json={"id": "42", "name": "Eff", "email": "f@b.c"})

        client = FacebookProfileClient(test_cfg.facebook, transport=_transport(handler))
        profile = await client.fetch_profile("fb-token")
        assert profile.id == "42"
        assert profile.name == "Eff"
        assert profile.token == "fb-token"

    @pytest.mark.asyncio
    async def test_rejected_token(self, test_cfg: Any) -> None:
        client = FacebookProfileClient(
            test_cfg.facebook, transport=_transport(lambda r: httpx.Response(400, json={}))
        )
        with pytest.raises(FacebookAuthError):
            await client.fetch_profile("bad")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [[{"id": "42"}], "42"])
    async def test_non_object_body(self, test_cfg: Any, payload: Any) -> None:
        client = FacebookProfileClient(
            test_cfg.facebook, transport=_transport(lambda r: httpx.Response(200, json=payload))
        )
        with pytest.raises(FacebookAuthError):
            await client.fetch_profile("fb-token")
