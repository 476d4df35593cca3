"""Dict-backed policy store for development and tests."""

from __future__ import annotations

import uuid
from typing import Dict, Optional

from loguru import logger

from rainy_day.schemas.policy import Policy
from rainy_day.schemas.policy_holder import PolicyHolder
from rainy_day.storage.base import DuplicateRecordError, StorageError


class InMemoryPolicyStore:
    """In-memory :class:`~rainy_day.storage.base.PolicyStore`.

    Records are copied on the way in and out so callers never mutate stored
    state without going through ``update_policy``.
    """

    def __init__(self) -> None:
        self.policy_holders: Dict[str, PolicyHolder] = {}
        self.policies: Dict[str, Policy] = {}

    async def ensure_indexes(self) -> None:
        logger.debug("In-memory store needs no indexes")

    # ── Policy holders ──────────────────────────────────────────────────

    async def insert_policy_holder(self, holder: PolicyHolder) -> PolicyHolder:
        for existing in self.policy_holders.values():
            if existing.policy_holder_id == holder.policy_holder_id:
                raise DuplicateRecordError("policyHolderID already exists", field="policyHolderID")
            if existing.confirmation_id == holder.confirmation_id:
                raise DuplicateRecordError("confirmationID already exists", field="confirmationID")
            if holder.email and existing.email == holder.email:
                raise DuplicateRecordError("email already exists", field="email")
            if holder.facebook.id and existing.facebook.id == holder.facebook.id:
                raise DuplicateRecordError("facebook.id already exists", field="facebook.id")

        stored = holder.model_copy(deep=True, update={"id": uuid.uuid4().hex})
        self.policy_holders[stored.id] = stored
        return stored.model_copy(deep=True)

    async def find_policy_holder_by_id(self, policy_holder_id: str) -> Optional[PolicyHolder]:
        return self._find_holder(lambda h: h.policy_holder_id == policy_holder_id)

    async def find_policy_holder_by_confirmation_id(
        self, confirmation_id: str
    ) -> Optional[PolicyHolder]:
        return self._find_holder(lambda h: h.confirmation_id == confirmation_id)

    async def find_policy_holders_by_email(self, email: str) -> list[PolicyHolder]:
        return [
            h.model_copy(deep=True) for h in self.policy_holders.values() if h.email == email
        ]

    async def find_policy_holder_by_facebook_id(self, facebook_id: str) -> Optional[PolicyHolder]:
        return self._find_holder(lambda h: h.facebook.id == facebook_id)

    async def delete_policy_holder(self, holder_ref: str) -> None:
        self.policy_holders.pop(holder_ref, None)

    # ── Policies ────────────────────────────────────────────────────────

    async def insert_policy(self, policy: Policy) -> Policy:
        for existing in self.policies.values():
            if existing.policy_id == policy.policy_id:
                raise DuplicateRecordError("policyID already exists", field="policyID")
            if existing.policy_holder == policy.policy_holder:
                raise DuplicateRecordError("policyHolder already has a policy", field="policyHolder")

        stored = policy.model_copy(deep=True, update={"id": uuid.uuid4().hex})
        self.policies[stored.id] = stored
        return stored.model_copy(deep=True)

    async def find_policy_by_holder(self, holder_ref: str) -> Optional[Policy]:
        return self._find_policy(lambda p: p.policy_holder == holder_ref)

    async def find_policy_by_id(self, policy_id: str) -> Optional[Policy]:
        return self._find_policy(lambda p: p.policy_id == policy_id)

    async def update_policy(self, policy: Policy) -> None:
        if policy.id not in self.policies:
            raise StorageError(f"Policy {policy.policy_id} is not stored")
        self.policies[policy.id] = policy.model_copy(deep=True)

    async def close(self) -> None:
        return None

    # ── Helpers ─────────────────────────────────────────────────────────

    def _find_holder(self, predicate) -> Optional[PolicyHolder]:
        for holder in self.policy_holders.values():
            if predicate(holder):
                return holder.model_copy(deep=True)
        return None

    def _find_policy(self, predicate) -> Optional[Policy]:
        for policy in self.policies.values():
            if predicate(policy):
                return policy.model_copy(deep=True)
        return None
