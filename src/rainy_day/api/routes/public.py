"""Public (unauthenticated) routes.

Endpoints
---------
GET  /
    Application shell.

GET  /confirm/{confirmation_id}
    Confirm a policy from the emailed link, then serve the shell.

POST /api/v1/login
    CAPTCHA-gated email/password login.

POST /api/v1/policies
    Create a policy (and a new account when no ``policyHolderID`` is given).

GET  /api/v1/health
    Lightweight health-check.
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from loguru import logger
from starlette.responses import Response

from rainy_day.api.dependencies import get_public_workflow
from rainy_day.api.responses import render_outcome, shell_response
from rainy_day.schemas.requests import LoginRequest, NewPolicyRequest
from rainy_day.workflows.public import PublicWorkflow

site_router = APIRouter()
router = APIRouter()


@site_router.get("/", include_in_schema=False)
async def index(request: Request) -> Response:
    return shell_response(request)


@site_router.get("/confirm/{confirmation_id}", include_in_schema=False)
async def confirm_policy_holder(
    confirmation_id: str,
    request: Request,
    workflow: PublicWorkflow = Depends(get_public_workflow),
) -> Response:
    outcome = await workflow.confirm_policy_holder(confirmation_id)
    return render_outcome(outcome, request)


@router.post(
    "/login",
    summary="Log in with email and password",
    description="Verifies the reCAPTCHA token, then the credentials; returns a token header.",
)
async def login(
    body: LoginRequest,
    request: Request,
    workflow: PublicWorkflow = Depends(get_public_workflow),
) -> Response:
    outcome = await workflow.login(body)
    return render_outcome(outcome, request)


@router.post(
    "/policies",
    summary="Create a new policy",
    description=(
        "Creates a policy for a returning holder, or registers a new holder from "
        "email/password. Sends a confirmation email and returns a token header."
    ),
)
async def create_new_policy(
    body: NewPolicyRequest,
    request: Request,
    background: BackgroundTasks,
    workflow: PublicWorkflow = Depends(get_public_workflow),
) -> Response:
    logger.info("API: received new policy for {city}", city=body.covered_city.name)
    outcome = await workflow.create_new_policy(body)
    return render_outcome(outcome, request, background)


@router.get("/health", summary="Health check")
async def health(request: Request) -> dict:
    """Return service health and the active storage backend."""
    return {"status": "healthy", "storage": request.app.state.cfg.storage.type}
