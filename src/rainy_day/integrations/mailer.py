"""Confirmation email delivery through the SendGrid v3 REST API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

import httpx
from loguru import logger

if TYPE_CHECKING:
    from omegaconf import DictConfig

    from rainy_day.core.outcome import ConfirmationEmail


class ConfirmationMailer:
    """Send the "confirm your policy" email built from a SendGrid template.

    Delivery runs after the HTTP response has been returned, so failures are
    logged and never reach the caller.

    Parameters
    ----------
    cfg:
        The ``mail`` config section.
    transport:
        Optional httpx transport, used by tests to stub SendGrid.
    """

    def __init__(
        self,
        cfg: DictConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key: str = cfg.api_key
        self.api_url: str = cfg.api_url
        self.template_id: str = cfg.template_id
        self.sender: str = cfg.sender
        self.subject: str = cfg.subject
        self.confirmation_base_url: Optional[str] = cfg.get("confirmation_base_url") or None
        self.timeout_seconds = float(cfg.timeout_seconds)
        self._transport = transport

    def confirmation_link(self, confirmation_id: str, request_host: str) -> str:
        base = (self.confirmation_base_url or f"https://{request_host}").rstrip("/")
        return f"{base}/confirm/{confirmation_id}"

    def build_message(self, email: ConfirmationEmail, request_host: str) -> dict[str, Any]:
        """Return the SendGrid ``mail/send`` payload for one confirmation."""
        return {
            "personalizations": [
                {
                    "to": [{"email": email.to}],
                    "subject": self.subject,
                    "substitutions": {
                        "<%body%>": "",
                        "<%confirmationLink%>": self.confirmation_link(
                            email.confirmation_id, request_host
                        ),
                    },
                }
            ],
            "from": {"email": self.sender},
            "subject": self.subject,
            "template_id": self.template_id,
        }

    async def send(self, email: ConfirmationEmail, request_host: str) -> None:
        payload = self.build_message(email, request_host)
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "Failed to send confirmation email to {to}: {err}", to=email.to, err=exc
            )
            return
        logger.info("Sent a confirmation email to {to}", to=email.to)
