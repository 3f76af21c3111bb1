"""Unified error handling: service errors and unexpected failures become JSON."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dephealth.services import ServiceError, UpstreamUnavailable, ValidationError

log = structlog.get_logger("dephealth.api")

UPSTREAM_ERROR_MESSAGE = "Error fetching dependency health."

_STATUS_MAP: dict[type[ServiceError], int] = {
    ValidationError: 422,
}


async def _service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
    status = 500
    for cls in type(exc).__mro__:
        if cls in _STATUS_MAP:
            status = _STATUS_MAP[cls]
            break
    return JSONResponse(status_code=status, content={"detail": str(exc)})


async def _upstream_error_handler(_request: Request, exc: UpstreamUnavailable) -> JSONResponse:
    log.error("upstream.unavailable", status_code=exc.status_code, error=str(exc))
    status = exc.status_code if 400 <= exc.status_code < 600 else 500
    return JSONResponse(status_code=status, content={"message": UPSTREAM_ERROR_MESSAGE})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("request.unhandled_error", path=request.url.path, error=repr(exc))
    return JSONResponse(status_code=500, content={"message": UPSTREAM_ERROR_MESSAGE})


def register_error_handlers(app: FastAPI) -> None:
    """Register exception handlers on the app."""
    app.add_exception_handler(UpstreamUnavailable, _upstream_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ServiceError, _service_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)
