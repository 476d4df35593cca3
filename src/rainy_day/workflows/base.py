"""Shared state and helpers for the public and secured workflows."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional

from rainy_day.core.security import new_short_id
from rainy_day.schemas.policy import CoveredCity, Policy, PolicyStatus

if TYPE_CHECKING:
    from omegaconf import DictConfig

    from rainy_day.core.security import TokenIssuer
    from rainy_day.storage.base import PolicyStore


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_midnight_iso(day: date) -> str:
    """Format *day* as the ISO string of its UTC midnight (``...T00:00:00.000Z``)."""
    return f"{day.isoformat()}T00:00:00.000Z"


class BaseWorkflow:
    """Holds the collaborators every workflow needs.

    Parameters
    ----------
    cfg:
        The full Hydra configuration.
    store:
        Policy / policy-holder storage.
    tokens:
        JWT issuer for the ``Authorization`` header and ``jwt`` cookie.
    clock:
        Returns the current UTC time; replaced in tests.
    """

    def __init__(
        self,
        cfg: DictConfig,
        store: PolicyStore,
        tokens: TokenIssuer,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.cfg = cfg
        self.store = store
        self.tokens = tokens
        self.clock = clock or _utc_now
        self.coverage_end_date = date.fromisoformat(str(cfg.policy.coverage_end_date))

    def build_policy(self, holder_ref: str, city: CoveredCity) -> Policy:
        """Return an unsaved, unconfirmed policy covering *city* from today."""
        return Policy(
            policy_id=new_short_id(),
            policy_holder=holder_ref,
            covered_city=city.model_copy(),
            start_date_iso_string=utc_midnight_iso(self.clock().astimezone(timezone.utc).date()),
            end_date_iso_string=utc_midnight_iso(self.coverage_end_date),
            status=PolicyStatus.UNCONFIRMED,
        )
