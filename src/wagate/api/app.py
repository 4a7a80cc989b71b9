"""FastAPI application factory for the gateway."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from wagate import __version__
from wagate.lifecycle import LifecycleCoordinator
from wagate.session.state import SessionStateMachine

logger = logging.getLogger(__name__)


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": str(exc) or type(exc).__name__})


async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies in the same ``{"error": ...}`` shape as other failures."""
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=422, content={"error": "invalid request"})
    first = errors[0]
    message = first.get("msg", "invalid")
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    if field:
        message = f"{field}: {message}"
    return JSONResponse(status_code=422, content={"error": message})


def create_app(machine: SessionStateMachine, coordinator: LifecycleCoordinator) -> FastAPI:
    """Build the gateway app around an existing state machine and coordinator."""
    from wagate.api.routes import router

    app = FastAPI(
        title="wagate",
        description="HTTP control surface over a WhatsApp Web session.",
        version=__version__,
    )
    app.state.session_state = machine
    app.state.coordinator = coordinator

    app.add_exception_handler(RequestValidationError, _invalid_request)
    app.add_exception_handler(Exception, _unhandled_error)
    app.include_router(router)
    return app
