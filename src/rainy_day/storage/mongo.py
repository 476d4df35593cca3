"""MongoDB policy store backed by pymongo's asyncio client."""

from __future__ import annotations

from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from loguru import logger
from pymongo import ASCENDING, AsyncMongoClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from rainy_day.schemas.policy import Policy
from rainy_day.schemas.policy_holder import PolicyHolder
from rainy_day.storage.base import DuplicateRecordError, StorageError

_HOLDERS = "policyholders"
_POLICIES = "policies"


class MongoPolicyStore:
    """:class:`~rainy_day.storage.base.PolicyStore` on a MongoDB database.

    Uniqueness is enforced by indexes created in :meth:`ensure_indexes`, so a
    concurrent duplicate write fails with :class:`DuplicateRecordError`
    rather than relying on the lookup done before it.

    Parameters
    ----------
    uri:
        MongoDB connection string.
    database:
        Database name holding the ``policyholders`` and ``policies``
        collections.
    """

    def __init__(self, uri: str, database: str) -> None:
        self._client: AsyncMongoClient = AsyncMongoClient(uri, tz_aware=True)
        self._db = self._client[database]
        self._holders = self._db[_HOLDERS]
        self._policies = self._db[_POLICIES]

    async def ensure_indexes(self) -> None:
        try:
            await self._holders.create_index([("policyHolderID", ASCENDING)], unique=True)
            await self._holders.create_index([("confirmationID", ASCENDING)], unique=True)
            await self._holders.create_index(
                [("email", ASCENDING)],
                unique=True,
                partialFilterExpression={"email": {"$type": "string"}},
            )
            await self._holders.create_index(
                [("facebook.id", ASCENDING)],
                unique=True,
                partialFilterExpression={"facebook.id": {"$type": "string"}},
            )
            await self._policies.create_index([("policyID", ASCENDING)], unique=True)
            await self._policies.create_index([("policyHolder", ASCENDING)], unique=True)
        except PyMongoError as exc:
            raise StorageError(str(exc)) from exc
        logger.info("MongoDB indexes ensured")

    # ── Policy holders ──────────────────────────────────────────────────

    async def insert_policy_holder(self, holder: PolicyHolder) -> PolicyHolder:
        doc = holder.model_dump(by_alias=True, exclude={"id"})
        try:
            result = await self._holders.insert_one(doc)
        except DuplicateKeyError as exc:
            raise DuplicateRecordError(str(exc), field=_duplicate_field(exc)) from exc
        except PyMongoError as exc:
            raise StorageError(str(exc)) from exc
        return holder.model_copy(update={"id": str(result.inserted_id)})

    async def find_policy_holder_by_id(self, policy_holder_id: str) -> Optional[PolicyHolder]:
        return _to_holder(await self._find_one(self._holders, {"policyHolderID": policy_holder_id}))

    async def find_policy_holder_by_confirmation_id(
        self, confirmation_id: str
    ) -> Optional[PolicyHolder]:
        return _to_holder(await self._find_one(self._holders, {"confirmationID": confirmation_id}))

    async def find_policy_holders_by_email(self, email: str) -> list[PolicyHolder]:
        try:
            docs = await self._holders.find({"email": email}).to_list(length=None)
        except PyMongoError as exc:
            raise StorageError(str(exc)) from exc
        return [_to_holder(doc) for doc in docs]

    async def find_policy_holder_by_facebook_id(self, facebook_id: str) -> Optional[PolicyHolder]:
        return _to_holder(await self._find_one(self._holders, {"facebook.id": facebook_id}))

    async def delete_policy_holder(self, holder_ref: str) -> None:
        try:
            await self._holders.delete_one({"_id": _object_id(holder_ref)})
        except PyMongoError as exc:
            raise StorageError(str(exc)) from exc

    # ── Policies ────────────────────────────────────────────────────────

    async def insert_policy(self, policy: Policy) -> Policy:
        doc = _policy_doc(policy)
        try:
            result = await self._policies.insert_one(doc)
        except DuplicateKeyError as exc:
            raise DuplicateRecordError(str(exc), field=_duplicate_field(exc)) from exc
        except PyMongoError as exc:
            raise StorageError(str(exc)) from exc
        return policy.model_copy(update={"id": str(result.inserted_id)})

    async def find_policy_by_holder(self, holder_ref: str) -> Optional[Policy]:
        return _to_policy(await self._find_one(self._policies, {"policyHolder": _object_id(holder_ref)}))

    async def find_policy_by_id(self, policy_id: str) -> Optional[Policy]:
        return _to_policy(await self._find_one(self._policies, {"policyID": policy_id}))

    async def update_policy(self, policy: Policy) -> None:
        try:
            result = await self._policies.replace_one(
                {"_id": _object_id(policy.id)}, _policy_doc(policy)
            )
        except PyMongoError as exc:
            raise StorageError(str(exc)) from exc
        if result.matched_count == 0:
            raise StorageError(f"Policy {policy.policy_id} is not stored")

    async def close(self) -> None:
        await self._client.close()

    # ── Helpers ─────────────────────────────────────────────────────────

    @staticmethod
    async def _find_one(collection: Any, query: dict[str, Any]) -> Optional[dict[str, Any]]:
        try:
            return await collection.find_one(query)
        except PyMongoError as exc:
            raise StorageError(str(exc)) from exc


def _object_id(value: Optional[str]) -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as exc:
        raise StorageError(f"Invalid storage identity: {value!r}") from exc


def _policy_doc(policy: Policy) -> dict[str, Any]:
    doc = policy.model_dump(by_alias=True, mode="json", exclude={"id"})
    doc["policyHolder"] = _object_id(policy.policy_holder)
    return doc


def _to_holder(doc: Optional[dict[str, Any]]) -> Optional[PolicyHolder]:
    if doc is None:
        return None
    doc["_id"] = str(doc["_id"])
    return PolicyHolder.model_validate(doc)


def _to_policy(doc: Optional[dict[str, Any]]) -> Optional[Policy]:
    if doc is None:
        return None
    doc["_id"] = str(doc["_id"])
    doc["policyHolder"] = str(doc["policyHolder"])
    return Policy.model_validate(doc)


def _duplicate_field(exc: DuplicateKeyError) -> Optional[str]:
    key_pattern = (exc.details or {}).get("keyPattern") or {}
    return next(iter(key_pattern), None)
