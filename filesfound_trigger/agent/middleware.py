"""Agent layer — Access logging and the error handler."""

from __future__ import annotations

import time
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from filesfound_trigger.agent.schemas import ErrorResponse
from filesfound_trigger.exceptions import FilesFoundError, ScanError, ScanInterrupted
from filesfound_trigger.logging import get_logger

log = get_logger(__name__)

# Checked in order; the first matching class decides status and code.
_ERROR_CODES: tuple[tuple[type[FilesFoundError], int, str], ...] = (
    (ScanInterrupted, 503, "scan_interrupted"),
    (ScanError, 500, "scan_error"),
)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One log line per scan request; health probes are logged at debug level."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        started = time.monotonic()
        response = await call_next(request)
        emit = log.debug if request.url.path == "/health" else log.info
        emit(
            "agent_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            client=request.client.host if request.client else None,
            duration_ms=round((time.monotonic() - started) * 1000, 2),
        )
        return response


def _classify(exc: FilesFoundError) -> tuple[int, str]:
    for exc_type, status_code, code in _ERROR_CODES:
        if isinstance(exc, exc_type):
            return status_code, code
    return 500, "internal_error"


def build_error_handler() -> Any:
    """Return the FastAPI exception handler for FilesFoundError subclasses."""

    async def handler(request: Request, exc: FilesFoundError) -> JSONResponse:
        status_code, code = _classify(exc)
        log.warning("agent_request_failed", path=request.url.path, code=code, error=exc.message)
        body = ErrorResponse(error=exc.message, code=code, detail=exc.context or None)
        return JSONResponse(status_code=status_code, content=body.model_dump())

    return handler
