"""Google reCAPTCHA verification client."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import httpx
from loguru import logger

if TYPE_CHECKING:
    from omegaconf import DictConfig


class RecaptchaError(Exception):
    """Raised when the verifier is unreachable or rejects the token."""


class RecaptchaVerifier:
    """Verify reCAPTCHA tokens against the ``siteverify`` endpoint.

    Parameters
    ----------
    cfg:
        The ``recaptcha`` config section (``secret_key``, ``verify_url``,
        ``timeout_seconds``).
    transport:
        Optional httpx transport, used by tests to stub the service.
    """

    def __init__(
        self,
        cfg: DictConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.secret_key: str = cfg.secret_key
        self.verify_url: str = cfg.verify_url
        self.timeout_seconds = float(cfg.timeout_seconds)
        self._transport = transport

    async def verify(self, token: str) -> None:
        """Return normally if *token* is accepted, raise :class:`RecaptchaError` otherwise."""
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    self.verify_url,
                    data={"response": token, "secret": self.secret_key},
                )
        except httpx.HTTPError as exc:
            logger.error("reCAPTCHA verifier unreachable: {err}", err=exc)
            raise RecaptchaError(str(exc)) from exc

        logger.info(
            "Received reCAPTCHA check response: status={status}",
            status=response.status_code,
        )
        if response.status_code != 200:
            raise RecaptchaError(
                f"reCAPTCHA response failed with status code {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise RecaptchaError(f"reCAPTCHA response was not JSON: {exc}") from exc

        if not isinstance(body, dict):
            raise RecaptchaError("reCAPTCHA response was not a JSON object")

        if not body.get("success"):
            error_codes = body.get("error-codes")
            codes = ", ".join(map(str, error_codes)) if isinstance(error_codes, list) else "Unknown"
            raise RecaptchaError(f"reCAPTCHA response failed with error codes: {codes}")
