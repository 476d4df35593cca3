"""Facebook Graph API client used by the Facebook token login strategy."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import httpx
from loguru import logger

from rainy_day.schemas.policy_holder import SocialIdentity

if TYPE_CHECKING:
    from omegaconf import DictConfig


class FacebookAuthError(Exception):
    """Raised when an access token cannot be exchanged for a profile."""


class FacebookProfileClient:
    """Resolve a Facebook access token into the account's profile."""

    def __init__(
        self,
        cfg: DictConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.graph_url: str = cfg.graph_url.rstrip("/")
        self.timeout_seconds = float(cfg.timeout_seconds)
        self._transport = transport

    async def fetch_profile(self, access_token: str) -> SocialIdentity:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get(
                    f"{self.graph_url}/me",
                    params={"fields": "id,name,email", "access_token": access_token},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Facebook profile lookup failed: {err}", err=exc)
            raise FacebookAuthError(str(exc)) from exc

        if not isinstance(data, dict) or not data.get("id"):
            raise FacebookAuthError("Facebook profile has no id")

        return SocialIdentity(
            id=str(data["id"]),
            token=access_token,
            name=data.get("name"),
            email=data.get("email"),
        )
