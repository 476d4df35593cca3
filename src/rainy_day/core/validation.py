"""Pre-condition checks run before a policy (and possibly a holder) is created."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from loguru import logger

from rainy_day.core.outcome import OutcomeKind, WorkflowOutcome
from rainy_day.core.security import MAX_PASSWORD_BYTES, password_too_long
from rainy_day.storage.base import StorageError

if TYPE_CHECKING:
    from rainy_day.schemas.requests import NewPolicyRequest
    from rainy_day.storage.base import PolicyStore

ValidationResult = tuple[bool, Optional[WorkflowOutcome]]


async def validate_new_policy(request: NewPolicyRequest, store: PolicyStore) -> ValidationResult:
    """Validate a new-policy submission.

    Checks performed (in order):
    1. Covered city name, latitude and longitude are present.
    2. Returning holder (``policyHolder.policyHolderID`` given): a Facebook or
       Google identity with a name, the holder exists, and it owns no policy.
    3. New holder: email and password are present and the email is unused.

    Returns
    -------
    tuple[bool, WorkflowOutcome | None]
        ``(True, None)`` to proceed, or ``(False, rejection)`` where
        *rejection* is the outcome to return to the caller.
    """
    try:
        return await _run_checks(request, store)
    except Exception as exc:
        logger.error("Failed while validating inputs: {err}", err=exc)
        return _reject("Failed while validating inputs.")


async def _run_checks(request: NewPolicyRequest, store: PolicyStore) -> ValidationResult:
    # ── 1. Covered city ─────────────────────────────────────────────────
    city = request.covered_city
    if is_blank(city.name) or is_blank(city.latitude) or is_blank(city.longitude):
        logger.warning("Rejected new policy: bad covered city")
        return _reject("Covered city name, latitude, or longitude is blank")

    holder_id = request.policy_holder.policy_holder_id
    if not is_blank(holder_id):
        return await _check_returning_holder(request, holder_id, store)
    return await _check_new_holder(request, store)


async def _check_returning_holder(
    request: NewPolicyRequest, holder_id: str, store: PolicyStore
) -> ValidationResult:
    # ── 2a. Social identity ─────────────────────────────────────────────
    if not is_blank(request.facebook.id):
        if is_blank(request.facebook.name):
            logger.warning("Rejected new policy: facebook profile name is blank")
            return _reject("Facebook profile name is blank")
    elif not is_blank(request.google.id):
        if is_blank(request.google.name):
            logger.warning("Rejected new policy: google profile name is blank")
            return _reject("Google profile name is blank")
    else:
        logger.warning("Rejected new policy: facebook / google credentials are blank")
        return _reject("Facebook / Google credentials are blank")

    # ── 2b. Holder exists and owns no policy ────────────────────────────
    try:
        holder = await store.find_policy_holder_by_id(holder_id)
        policy = await store.find_policy_by_holder(holder.id) if holder else None
    except StorageError as exc:
        logger.error(
            "Could not search for existing Policies. PolicyHolderID={id}: {err}",
            id=holder_id,
            err=exc,
        )
        return _reject("Could not search for existing Policies")

    if holder is None:
        logger.warning("Rejected new policy: unknown PolicyHolderID {id}", id=holder_id)
        return _reject("Could not search for existing Policies")

    if policy is not None:
        logger.warning("Rejected new policy: PolicyHolderID {id} already has a Policy", id=holder_id)
        return _reject("PolicyHolderID already associated with a Policy", OutcomeKind.CONFLICT)

    return True, None


async def _check_new_holder(request: NewPolicyRequest, store: PolicyStore) -> ValidationResult:
    # ── 3a. Credentials present ─────────────────────────────────────────
    if is_blank(request.email_address):
        logger.warning("Rejected new policy: email address is blank")
        return _reject("Email address is blank")
    if is_blank(request.password):
        logger.warning("Rejected new policy: password is blank")
        return _reject("Password is blank")
    if password_too_long(request.password):
        logger.warning("Rejected new policy: password is too long")
        return _reject(f"Password is longer than {MAX_PASSWORD_BYTES} bytes")

    # ── 3b. Email unused ────────────────────────────────────────────────
    try:
        existing = await store.find_policy_holders_by_email(request.email_address)
    except StorageError as exc:
        logger.error(
            "Could not search for existing PolicyHolders. Email={email}: {err}",
            email=request.email_address,
            err=exc,
        )
        return _reject("Could not search for existing PolicyHolders")

    if existing:
        logger.warning("Rejected new policy: email address already associated with a Policy")
        return _reject("Email address already associated with a Policy", OutcomeKind.CONFLICT)

    return True, None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def is_blank(value: Any) -> bool:
    """``None`` and whitespace-only strings are blank; numbers never are."""
    if value is None:
        return True
    return isinstance(value, str) and value.strip() == ""


def _reject(
    error: str, kind: OutcomeKind = OutcomeKind.INVALID_INPUT
) -> tuple[bool, WorkflowOutcome]:
    return False, WorkflowOutcome.failure(kind, error)
