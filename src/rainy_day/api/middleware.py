"""ASGI middleware: per-request logging and a last-resort exception handler."""

from __future__ import annotations

import time
import traceback

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status code and duration of every request."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "{method} {path} -> {status} ({ms:.0f}ms)",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            ms=(time.perf_counter() - started) * 1000,
        )
        return response


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Turn anything a route failed to handle into a JSON 500."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                "Unhandled exception on {method} {path}: {err}\n{tb}",
                method=request.method,
                path=request.url.path,
                err=exc,
                tb=traceback.format_exc(),
            )
            return JSONResponse(status_code=500, content={"error": "Internal server error"})
