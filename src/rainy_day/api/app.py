"""FastAPI application factory.

``create_app`` builds a fully configured ``FastAPI`` instance with:

* CORS middleware
* Request-logging / exception-handling middleware
* Public, secured and site (shell / confirmation link) routes
* Lifespan manager that prepares storage indexes and closes the store
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from rainy_day.api.middleware import ExceptionHandlerMiddleware, RequestLoggingMiddleware
from rainy_day.api.routes.public import router as public_router
from rainy_day.api.routes.public import site_router
from rainy_day.api.routes.secure import router as secure_router
from rainy_day.core.security import TokenIssuer
from rainy_day.integrations.facebook import FacebookProfileClient
from rainy_day.integrations.mailer import ConfirmationMailer
from rainy_day.integrations.recaptcha import RecaptchaVerifier
from rainy_day.logging.setup import setup_logging
from rainy_day.storage.factory import create_store
from rainy_day.workflows.public import PublicWorkflow
from rainy_day.workflows.secured import SecuredWorkflow

if TYPE_CHECKING:
    from omegaconf import DictConfig

    from rainy_day.storage.base import PolicyStore


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle for the FastAPI application."""
    store: PolicyStore = app.state.store
    await store.ensure_indexes()
    logger.info("Application startup complete")
    yield
    await store.close()
    logger.info("Application shutting down")


# ---------------------------------------------------------------------------
# Error bodies
# ---------------------------------------------------------------------------

async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Malformed body on {path}: {err}", path=request.url.path, err=exc.errors())
    return JSONResponse(status_code=400, content={"error": "Malformed request body"})


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def create_app(
    cfg: DictConfig,
    *,
    store: Optional[PolicyStore] = None,
    recaptcha: Optional[RecaptchaVerifier] = None,
    mailer: Optional[ConfirmationMailer] = None,
    facebook: Optional[FacebookProfileClient] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """Build and return a fully configured :class:`FastAPI` application.

    Parameters
    ----------
    cfg:
        The merged Hydra configuration.
    store, recaptcha, mailer, facebook:
        Collaborators to use instead of the ones built from *cfg*.
    clock:
        Source of the current UTC time for policy start dates.

    Returns
    -------
    FastAPI
        Ready-to-run application instance.
    """
    # ── Logging ──────────────────────────────────────────────────────────
    setup_logging(cfg.logging)

    # ── App ──────────────────────────────────────────────────────────────
    app = FastAPI(
        title="Rainy Day Insurance",
        description="Weather-contingent insurance policies",
        version="1.0.0",
        lifespan=_lifespan,
    )
    app.state.cfg = cfg

    # ── Collaborators and workflows ──────────────────────────────────────
    store = store or create_store(cfg)
    tokens = TokenIssuer(cfg.auth)
    app.state.store = store
    app.state.tokens = tokens
    app.state.mailer = mailer or ConfirmationMailer(cfg.mail)
    app.state.facebook = facebook or FacebookProfileClient(cfg.facebook)
    app.state.public_workflow = PublicWorkflow(
        cfg, store, tokens, recaptcha or RecaptchaVerifier(cfg.recaptcha), clock=clock
    )
    app.state.secured_workflow = SecuredWorkflow(cfg, store, tokens, clock=clock)
    logger.info("Workflows registered on {store} store", store=cfg.storage.type)

    # ── CORS ─────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cfg.server.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Authorization"],
    )

    # ── Custom middleware (outermost = first to run) ─────────────────────
    app.add_middleware(ExceptionHandlerMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _invalid_body)

    # ── Routes ───────────────────────────────────────────────────────────
    app.include_router(public_router, prefix="/api/v1")
    app.include_router(secure_router, prefix="/api/v1/secure")
    app.include_router(site_router)

    return app
