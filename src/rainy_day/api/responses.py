"""Turn a :class:`WorkflowOutcome` into the one HTTP response a route returns."""

from __future__ import annotations

from pathlib import Path

from fastapi import BackgroundTasks, Request
from loguru import logger
from starlette.responses import FileResponse, JSONResponse, Response

from rainy_day.core.outcome import WorkflowOutcome

SHELL_FILE = "index.html"
TOKEN_COOKIE = "jwt"


def shell_response(request: Request) -> Response:
    """Serve the application shell from ``web.public_dir``."""
    shell = Path(request.app.state.cfg.web.public_dir) / SHELL_FILE
    if not shell.is_file():
        logger.error("Application shell missing at {path}", path=shell)
        return JSONResponse(status_code=404, content={"error": "Application shell not found"})
    return FileResponse(shell, media_type="text/html")


def render_outcome(
    outcome: WorkflowOutcome,
    request: Request,
    background: BackgroundTasks | None = None,
) -> Response:
    """Write *outcome* as a response and queue its confirmation emails.

    The status code comes from the outcome taxonomy; a token goes into the
    ``Authorization`` header and, when asked for, the ``jwt`` cookie.
    """
    if outcome.serve_shell:
        response = shell_response(request)
    else:
        response = JSONResponse(status_code=outcome.status_code, content=outcome.body)

    if outcome.token:
        response.headers["Authorization"] = outcome.token
        if outcome.set_cookie:
            response.set_cookie(TOKEN_COOKIE, outcome.token)

    if outcome.emails and background is not None:
        mailer = request.app.state.mailer
        host = request.headers.get("host") or request.url.netloc
        for email in outcome.emails:
            background.add_task(mailer.send, email, host)

    return response
