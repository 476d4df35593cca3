"""Unauthenticated workflows: login, new policy / account creation, confirmation."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional

from loguru import logger

from rainy_day.core.outcome import ConfirmationEmail, OutcomeKind, WorkflowOutcome
from rainy_day.core.security import hash_password, new_short_id, verify_password
from rainy_day.core.validation import is_blank, validate_new_policy
from rainy_day.integrations.recaptcha import RecaptchaError
from rainy_day.schemas.policy import PolicyStatus
from rainy_day.schemas.policy_holder import PolicyHolder
from rainy_day.storage.base import DuplicateRecordError, StorageError
from rainy_day.workflows.base import BaseWorkflow

if TYPE_CHECKING:
    from omegaconf import DictConfig

    from rainy_day.core.security import TokenIssuer
    from rainy_day.integrations.recaptcha import RecaptchaVerifier
    from rainy_day.schemas.policy import CoveredCity
    from rainy_day.schemas.requests import LoginRequest, NewPolicyRequest
    from rainy_day.storage.base import PolicyStore

INCORRECT_EMAIL = "Incorrect email."
INCORRECT_PASSWORD = "Incorrect password"
MISSING_CREDENTIALS = "Missing credentials"


class PublicWorkflow(BaseWorkflow):
    """Login, policy creation and email confirmation.

    The covered-city dates and the confirmation link are the only parts
    driven by configuration; everything else follows the request.
    """

    def __init__(
        self,
        cfg: DictConfig,
        store: PolicyStore,
        tokens: TokenIssuer,
        recaptcha: RecaptchaVerifier,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        super().__init__(cfg, store, tokens, clock)
        self.recaptcha = recaptcha
        self.bcrypt_rounds = int(cfg.auth.bcrypt_rounds)

    # -----------------------------------------------------------------
    # login
    # -----------------------------------------------------------------

    async def login(self, request: LoginRequest) -> WorkflowOutcome:
        """CAPTCHA-gated email/password login."""
        if is_blank(request.recaptcha_token):
            return _login_failure(
                OutcomeKind.INVALID_INPUT, "Missing the reCAPTCHA token", existing_account=False
            )

        try:
            await self.recaptcha.verify(request.recaptcha_token)
        except RecaptchaError as exc:
            return _login_failure(OutcomeKind.UPSTREAM_ERROR, str(exc), existing_account=False)

        try:
            holder, reason = await self.authenticate_local(request.email, request.password)
        except StorageError as exc:
            logger.error("Failed to communicate with the DB during login: {err}", err=exc)
            return _login_failure(OutcomeKind.STORAGE_ERROR, str(exc), existing_account=False)

        if holder is None:
            logger.info("Login rejected: {reason}", reason=reason)
            return WorkflowOutcome.failure(
                OutcomeKind.INVALID_INPUT,
                None,
                existingAccount=reason == INCORRECT_PASSWORD,
                message=reason,
            )

        try:
            policy = await self.store.find_policy_by_holder(holder.id)
        except StorageError as exc:
            logger.error("Failed to communicate with the DB. ErrorMessage={err}", err=exc)
            return _login_failure(
                OutcomeKind.STORAGE_ERROR, str(exc), existing_account=True, message=str(exc)
            )

        if policy is None:
            logger.warning(
                "Failed to locate the requested Policy. PolicyHolderID={id}",
                id=holder.policy_holder_id,
            )
            return WorkflowOutcome.failure(
                OutcomeKind.NOT_FOUND, "Failed to locate the requested Policy"
            )

        token = self.tokens.create_token(
            holder.email, holder.policy_holder_id, policy.covered_city.name
        )
        logger.info("PolicyHolder {id} logged in", id=holder.policy_holder_id)
        return WorkflowOutcome.success(
            {"existingAccount": True, "error": None, "message": "logged in"}, token=token
        )

    async def authenticate_local(
        self, email: Optional[str], password: Optional[str]
    ) -> tuple[Optional[PolicyHolder], str]:
        """Check an email/password pair against the stored bcrypt hash.

        Returns the holder and ``"ok"``, or ``None`` and the reason the
        credentials were refused.
        """
        if is_blank(email) or is_blank(password):
            return None, MISSING_CREDENTIALS

        holders = await self.store.find_policy_holders_by_email(email)
        if not holders:
            return None, INCORRECT_EMAIL

        holder = holders[0]
        if not verify_password(password, holder.password):
            return None, INCORRECT_PASSWORD
        return holder, "ok"

    # -----------------------------------------------------------------
    # createNewPolicy
    # -----------------------------------------------------------------

    async def create_new_policy(self, request: NewPolicyRequest) -> WorkflowOutcome:
        """Create a policy for a returning holder, or a new holder and its policy."""
        is_valid, rejection = await validate_new_policy(request, self.store)
        if not is_valid:
            return rejection

        holder_id = request.policy_holder.policy_holder_id
        if not is_blank(holder_id):
            return await self._create_for_existing_holder(holder_id, request.covered_city)
        return await self._create_with_new_holder(request)

    async def _create_for_existing_holder(
        self, holder_id: str, city: CoveredCity
    ) -> WorkflowOutcome:
        try:
            holder = await self.store.find_policy_holder_by_id(holder_id)
        except StorageError as exc:
            logger.error(
                "Could not search for existing PolicyHolders. PolicyHolderID={id}: {err}",
                id=holder_id,
                err=exc,
            )
            return WorkflowOutcome.failure(
                OutcomeKind.STORAGE_ERROR, "Could not search for existing PolicyHolders"
            )

        if holder is None:
            return WorkflowOutcome.failure(
                OutcomeKind.NOT_FOUND, "Failed to locate the requested PolicyHolder"
            )

        return await self._save_policy(
            holder,
            city,
            display_name=holder.social_name(),
            email_to=holder.social_email(),
        )

    async def _create_with_new_holder(self, request: NewPolicyRequest) -> WorkflowOutcome:
        new_holder = PolicyHolder(
            policy_holder_id=new_short_id(),
            email=request.email_address,
            password=hash_password(request.password, rounds=self.bcrypt_rounds),
            confirmation_id=new_short_id(),
        )

        try:
            holder = await self.store.insert_policy_holder(new_holder)
        except DuplicateRecordError as exc:
            logger.warning("policyHolder not saved, duplicate {field}", field=exc.field)
            if exc.field in (None, "email"):
                return WorkflowOutcome.failure(
                    OutcomeKind.CONFLICT, "Email address already associated with a Policy"
                )
            return WorkflowOutcome.failure(OutcomeKind.CONFLICT, "policyHolder not saved!")
        except StorageError as exc:
            logger.error("policyHolder not saved! {err}", err=exc)
            return WorkflowOutcome.failure(OutcomeKind.STORAGE_ERROR, "policyHolder not saved!")

        logger.info("policyHolder saved: {id}", id=holder.policy_holder_id)
        outcome = await self._save_policy(
            holder,
            request.covered_city,
            display_name=holder.email,
            email_to=holder.email,
        )
        if not outcome.ok:
            await self._discard_holder(holder)
        return outcome

    async def _discard_holder(self, holder: PolicyHolder) -> None:
        # A holder without a policy would keep its email locked
        try:
            await self.store.delete_policy_holder(holder.id)
        except StorageError as exc:
            logger.error(
                "Could not remove policyHolder {id} after a failed policy save: {err}",
                id=holder.policy_holder_id,
                err=exc,
            )
            return
        logger.info("Removed policyHolder {id} after a failed policy save", id=holder.policy_holder_id)

    async def _save_policy(
        self,
        holder: PolicyHolder,
        city: CoveredCity,
        *,
        display_name: Optional[str],
        email_to: Optional[str],
    ) -> WorkflowOutcome:
        try:
            policy = await self.store.insert_policy(self.build_policy(holder.id, city))
        except DuplicateRecordError:
            logger.warning("policy not saved, holder {id} already has one", id=holder.policy_holder_id)
            return WorkflowOutcome.failure(
                OutcomeKind.CONFLICT, "PolicyHolderID already associated with a Policy"
            )
        except StorageError as exc:
            logger.error("policy not saved! {err}", err=exc)
            return WorkflowOutcome.failure(OutcomeKind.STORAGE_ERROR, "policy not saved!")

        logger.info(
            "policy saved: {policy} for {holder}",
            policy=policy.policy_id,
            holder=holder.policy_holder_id,
        )

        emails = []
        if is_blank(email_to):
            logger.warning(
                "No email address for PolicyHolder {id}, confirmation email suppressed",
                id=holder.policy_holder_id,
            )
        else:
            emails.append(ConfirmationEmail(to=email_to, confirmation_id=holder.confirmation_id))

        token = self.tokens.create_token(
            display_name, holder.policy_holder_id, policy.covered_city.name
        )
        return WorkflowOutcome.success(
            policy.model_dump(by_alias=True, mode="json"), token=token, emails=emails
        )

    # -----------------------------------------------------------------
    # confirmPolicyHolder
    # -----------------------------------------------------------------

    async def confirm_policy_holder(self, confirmation_id: Optional[str]) -> WorkflowOutcome:
        """Confirm the policy behind *confirmation_id* and serve the app shell.

        Unknown codes and already-confirmed policies just serve the shell, so
        visiting the same link twice is harmless.
        """
        if is_blank(confirmation_id):
            return WorkflowOutcome.shell()

        try:
            holder = await self.store.find_policy_holder_by_confirmation_id(confirmation_id)
            policy = await self.store.find_policy_by_holder(holder.id) if holder else None
        except StorageError as exc:
            logger.error("Failed while attempting to retrieve a specific Policy from the DB: {err}", err=exc)
            return WorkflowOutcome.failure(
                OutcomeKind.STORAGE_ERROR,
                f"Failed while attempting to retrieve a specific Policy from the DB. ERROR-MESSAGE: {exc}",
            )

        if holder is None or policy is None:
            logger.info("Nothing to confirm for code {code}", code=confirmation_id)
            return WorkflowOutcome.shell()

        if policy.status is not PolicyStatus.UNCONFIRMED:
            return WorkflowOutcome.shell()

        policy.status = PolicyStatus.CONFIRMED
        try:
            await self.store.update_policy(policy)
        except StorageError as exc:
            logger.error("Failed while marking the Policy as Confirmed: {err}", err=exc)
            return WorkflowOutcome.failure(
                OutcomeKind.STORAGE_ERROR,
                "Failed while attempting to retrieve a specific Policy from the DB, "
                f"specifically while marking the Policy as Confirmed. ERROR-MESSAGE: {exc}",
            )

        logger.info("New policy confirmed: {id}", id=policy.policy_id)
        token = self.tokens.create_token(
            holder.display_name(), holder.policy_holder_id, policy.covered_city.name
        )
        return WorkflowOutcome.shell(token=token)


def _login_failure(
    kind: OutcomeKind,
    error: str,
    *,
    existing_account: bool,
    message: str = "Login failed",
) -> WorkflowOutcome:
    return WorkflowOutcome.failure(
        kind, error, existingAccount=existing_account, message=message
    )
