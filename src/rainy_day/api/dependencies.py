"""FastAPI dependencies: workflow lookup and the two authentication gates."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import Header, HTTPException, Query, Request
from loguru import logger

from rainy_day.api.responses import TOKEN_COOKIE
from rainy_day.integrations.facebook import FacebookAuthError
from rainy_day.schemas.policy_holder import PolicyHolder
from rainy_day.storage.base import StorageError
from rainy_day.workflows.public import PublicWorkflow
from rainy_day.workflows.secured import SecuredWorkflow


def get_public_workflow(request: Request) -> PublicWorkflow:
    return request.app.state.public_workflow


def get_secured_workflow(request: Request) -> SecuredWorkflow:
    return request.app.state.secured_workflow


def require_token(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> dict[str, Any]:
    """Verify the session token from the ``Authorization`` header or ``jwt`` cookie.

    Accepts both a bare token and ``Bearer <token>``. The decoded claims are
    returned and kept on ``request.state.token_claims``.
    """
    token = authorization or request.cookies.get(TOKEN_COOKIE)
    if token and token.lower().startswith("bearer "):
        token = token[7:].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing session token")

    claims = request.app.state.tokens.decode_token(token)
    if claims is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session token")

    request.state.token_claims = claims
    return claims


async def require_facebook_user(
    request: Request,
    access_token_header: Optional[str] = Header(
        default=None, alias="access_token", convert_underscores=False
    ),
    access_token_query: Optional[str] = Query(default=None, alias="access_token"),
) -> PolicyHolder:
    """Exchange a Facebook access token for the matching policy holder.

    The holder is registered on first login. Graph API failures answer 401,
    storage failures 400.
    """
    access_token = access_token_header or access_token_query
    if not access_token:
        raise HTTPException(status_code=401, detail="Missing Facebook access token")

    try:
        profile = await request.app.state.facebook.fetch_profile(access_token)
    except FacebookAuthError as exc:
        raise HTTPException(status_code=401, detail="Facebook authentication failed") from exc

    try:
        holder = await request.app.state.secured_workflow.link_facebook_account(profile)
    except StorageError as exc:
        logger.error("Failed to link facebook account: {err}", err=exc)
        raise HTTPException(
            status_code=400, detail=f"Failed to communicate with the DB. ErrorMessage={exc}"
        ) from exc

    request.state.user = holder
    return holder
