"""Storage contract shared by the in-memory and MongoDB policy stores."""

from __future__ import annotations

from typing import Optional, Protocol

from rainy_day.schemas.policy import Policy
from rainy_day.schemas.policy_holder import PolicyHolder


class StorageError(Exception):
    """Raised when the underlying database fails."""


class DuplicateRecordError(StorageError):
    """Raised when a write violates a uniqueness rule.

    ``field`` names the unique key that collided (e.g. ``"email"``).
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class PolicyStore(Protocol):
    """Async access to policy holders and policies.

    Uniqueness rules every implementation enforces on write:

    * one holder per ``policyHolderID`` and per ``confirmationID``
    * one password holder per ``email``
    * one holder per Facebook account id
    * one policy per ``policyID`` and per owning holder
    """

    async def ensure_indexes(self) -> None:
        ...

    async def insert_policy_holder(self, holder: PolicyHolder) -> PolicyHolder:
        """Store *holder* and return it with its storage identity set."""
        ...

    async def find_policy_holder_by_id(self, policy_holder_id: str) -> Optional[PolicyHolder]:
        ...

    async def find_policy_holder_by_confirmation_id(
        self, confirmation_id: str
    ) -> Optional[PolicyHolder]:
        ...

    async def find_policy_holders_by_email(self, email: str) -> list[PolicyHolder]:
        ...

    async def find_policy_holder_by_facebook_id(self, facebook_id: str) -> Optional[PolicyHolder]:
        ...

    async def delete_policy_holder(self, holder_ref: str) -> None:
        """Remove the holder with storage identity *holder_ref*, if stored."""
        ...

    async def insert_policy(self, policy: Policy) -> Policy:
        """Store *policy* and return it with its storage identity set."""
        ...

    async def find_policy_by_holder(self, holder_ref: str) -> Optional[Policy]:
        """Return the policy owned by the holder with storage identity *holder_ref*."""
        ...

    async def find_policy_by_id(self, policy_id: str) -> Optional[Policy]:
        ...

    async def update_policy(self, policy: Policy) -> None:
        """Replace the stored policy that has the same storage identity."""
        ...

    async def close(self) -> None:
        ...
