"""Token-gated workflows: policy lookup, payout address binding, Facebook login."""

from __future__ import annotations

from typing import Optional

from loguru import logger

from rainy_day.core.ethereum import is_address
from rainy_day.core.outcome import OutcomeKind, WorkflowOutcome
from rainy_day.core.security import new_short_id
from rainy_day.core.validation import is_blank
from rainy_day.schemas.policy_holder import PolicyHolder, SocialIdentity
from rainy_day.schemas.requests import GetPolicyRequest, SetEthereumAddressRequest
from rainy_day.storage.base import DuplicateRecordError, StorageError
from rainy_day.workflows.base import BaseWorkflow

HOLDER_NOT_FOUND = "Failed to locate the requested PolicyHolder"
POLICY_NOT_FOUND = "Failed to locate the requested Policy"
BAD_ADDRESS = (
    "Ethereum Address does not meet formatting requirements or did not pass checksum validation"
)


class SecuredWorkflow(BaseWorkflow):
    """Operations for callers that already hold a valid session token."""

    async def get_policy(
        self, request: GetPolicyRequest, caller_id: Optional[str] = None
    ) -> WorkflowOutcome:
        """Return the policy owned by ``request.policyHolderID``.

        When *caller_id* (the token's ``policyHolderID``) is given, other
        holders are reported as not found.
        """
        holder_id = request.policy_holder_id
        if is_blank(holder_id):
            return WorkflowOutcome.failure(OutcomeKind.NOT_FOUND, HOLDER_NOT_FOUND)
        if caller_id is not None and caller_id != holder_id:
            logger.warning(
                "Token of {caller} cannot read PolicyHolderID={id}", caller=caller_id, id=holder_id
            )
            return WorkflowOutcome.failure(OutcomeKind.NOT_FOUND, HOLDER_NOT_FOUND)

        try:
            holder = await self.store.find_policy_holder_by_id(holder_id)
        except StorageError as exc:
            return _db_failure(exc)

        if holder is None:
            logger.warning("Failed to locate the requested PolicyHolder. PolicyHolderID={id}", id=holder_id)
            return WorkflowOutcome.failure(OutcomeKind.NOT_FOUND, HOLDER_NOT_FOUND)

        try:
            policy = await self.store.find_policy_by_holder(holder.id)
        except StorageError as exc:
            return _db_failure(exc)

        if policy is None:
            logger.warning("Failed to locate the requested Policy. PolicyHolderID={id}", id=holder_id)
            return WorkflowOutcome.failure(OutcomeKind.NOT_FOUND, POLICY_NOT_FOUND)

        return WorkflowOutcome.success(policy.model_dump(by_alias=True, mode="json"))

    async def set_ethereum_address_for_policy(
        self, request: SetEthereumAddressRequest, caller_id: Optional[str] = None
    ) -> WorkflowOutcome:
        """Bind a checksum-valid payout address to a policy.

        When *caller_id* is given, only that holder's own policy can be changed.
        """
        try:
            if is_blank(request.policy_id):
                logger.warning("Rejected address update: bad policyID")
                return WorkflowOutcome.failure(OutcomeKind.INVALID_INPUT, "PolicyID is blank")
            if request.ethereum_address is None or not is_address(request.ethereum_address):
                logger.warning("Rejected address update: bad Ethereum Address")
                return WorkflowOutcome.failure(OutcomeKind.INVALID_INPUT, BAD_ADDRESS)
        except Exception as exc:
            logger.error("Failed while validating inputs: {err}", err=exc)
            return WorkflowOutcome.failure(
                OutcomeKind.INVALID_INPUT, "Failed while validating inputs."
            )

        try:
            policy = await self.store.find_policy_by_id(request.policy_id)
        except StorageError as exc:
            return _db_failure(exc)

        if policy is None:
            logger.warning("Failed to locate the requested Policy. PolicyID={id}", id=request.policy_id)
            return WorkflowOutcome.failure(OutcomeKind.NOT_FOUND, POLICY_NOT_FOUND)

        if caller_id is not None:
            try:
                caller = await self.store.find_policy_holder_by_id(caller_id)
            except StorageError as exc:
                return _db_failure(exc)
            if caller is None or caller.id != policy.policy_holder:
                logger.warning(
                    "Token of {caller} cannot change PolicyID={id}",
                    caller=caller_id,
                    id=request.policy_id,
                )
                return WorkflowOutcome.failure(OutcomeKind.NOT_FOUND, POLICY_NOT_FOUND)

        policy.ethereum_address = request.ethereum_address
        try:
            await self.store.update_policy(policy)
        except StorageError as exc:
            return _db_failure(exc)

        logger.info("Ethereum address set for policy {id}", id=policy.policy_id)
        return WorkflowOutcome.success({"status": "ok"})

    async def login_facebook_user(self, user: PolicyHolder) -> WorkflowOutcome:
        """Report whether a Facebook-authenticated holder already has a policy.

        A missing holder or policy is a normal first-login outcome, not an
        error; the caller gets the profile back to start a new policy.
        """
        logger.info("Logging facebook user in: {id}", id=user.policy_holder_id)
        no_policy = WorkflowOutcome.success(
            {
                "hasPolicy": False,
                "accountID": user.facebook.id,
                "policyHolderID": user.policy_holder_id,
                "policyHolderName": user.facebook.name,
                "email": user.facebook.email,
            }
        )

        try:
            holder = await self.store.find_policy_holder_by_id(user.policy_holder_id)
            policy = await self.store.find_policy_by_holder(holder.id) if holder else None
        except StorageError as exc:
            logger.warning("Policy lookup failed for facebook user: {err}", err=exc)
            return no_policy

        if policy is None:
            logger.info("No policy for this facebook user")
            return no_policy

        logger.info("Facebook user already has a policy")
        token = self.tokens.create_token(
            user.facebook.name, user.policy_holder_id, policy.covered_city.name
        )
        return WorkflowOutcome.success({"hasPolicy": True}, token=token)

    async def link_facebook_account(self, profile: SocialIdentity) -> PolicyHolder:
        """Find the holder for a Facebook profile, registering one on first login.

        Raises
        ------
        StorageError
            If the store fails while looking up or saving the holder.
        """
        holder = await self.store.find_policy_holder_by_facebook_id(profile.id)
        if holder is not None:
            return holder

        new_holder = PolicyHolder(
            policy_holder_id=new_short_id(),
            confirmation_id=new_short_id(),
            facebook=profile,
        )
        try:
            holder = await self.store.insert_policy_holder(new_holder)
        except DuplicateRecordError:
            # Another request registered this account first
            holder = await self.store.find_policy_holder_by_facebook_id(profile.id)
            if holder is None:
                raise
        logger.info("Registered facebook user {id}", id=holder.policy_holder_id)
        return holder


def _db_failure(exc: StorageError) -> WorkflowOutcome:
    logger.error("Failed to communicate with the DB. ErrorMessage={err}", err=exc)
    return WorkflowOutcome.failure(
        OutcomeKind.STORAGE_ERROR, f"Failed to communicate with the DB. ErrorMessage={exc}"
    )
