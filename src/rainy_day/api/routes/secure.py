"""Secured routes; every request must pass a token gate first.

Endpoints
---------
POST /api/v1/secure/policy
    Fetch the policy of ``policyHolderID`` (the token's own holder only).

POST /api/v1/secure/policy/ethereum-address
    Bind a payout address to ``policyID`` (a policy of the token's holder).

GET  /api/v1/secure/auth/facebook
    Facebook login; reports whether the account already has a policy.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from starlette.responses import Response

from rainy_day.api.dependencies import get_secured_workflow, require_facebook_user, require_token
from rainy_day.api.responses import render_outcome
from rainy_day.schemas.policy_holder import PolicyHolder
from rainy_day.schemas.requests import GetPolicyRequest, SetEthereumAddressRequest
from rainy_day.workflows.secured import SecuredWorkflow

router = APIRouter()


@router.post(
    "/policy",
    summary="Get a policy",
)
async def get_policy(
    body: GetPolicyRequest,
    request: Request,
    claims: dict = Depends(require_token),
    workflow: SecuredWorkflow = Depends(get_secured_workflow),
) -> Response:
    outcome = await workflow.get_policy(body, caller_id=claims.get("policyHolderID") or "")
    return render_outcome(outcome, request)


@router.post(
    "/policy/ethereum-address",
    summary="Set the payout Ethereum address of a policy",
)
async def set_ethereum_address_for_policy(
    body: SetEthereumAddressRequest,
    request: Request,
    claims: dict = Depends(require_token),
    workflow: SecuredWorkflow = Depends(get_secured_workflow),
) -> Response:
    outcome = await workflow.set_ethereum_address_for_policy(
        body, caller_id=claims.get("policyHolderID") or ""
    )
    return render_outcome(outcome, request)


@router.get("/auth/facebook", summary="Log a Facebook user in")
async def login_facebook_user(
    request: Request,
    user: PolicyHolder = Depends(require_facebook_user),
    workflow: SecuredWorkflow = Depends(get_secured_workflow),
) -> Response:
    outcome = await workflow.login_facebook_user(user)
    return render_outcome(outcome, request)
