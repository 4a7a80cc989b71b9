# Gateway HTTP routes: health, status, QR pairing, send, session start.
# Created: 2026-10-19
#
# Every read is a snapshot of the session state store; only /send and
# /session/start reach the session client (through the coordinator).

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse

from wagate.api.deps import get_coordinator, get_state_machine
from wagate.api.schemas import (
    ErrorResponse,
    QRResponse,
    RootResponse,
    SendRequest,
    SendResponse,
    SessionStartResponse,
    StatusResponse,
)
from wagate.lifecycle import LifecycleCoordinator
from wagate.session.client import to_chat_id
from wagate.session.state import SessionStateMachine

logger = logging.getLogger(__name__)

router = APIRouter()

ALREADY_CONNECTED = "already connected"
QR_NOT_AVAILABLE = "not available"
NOT_CONNECTED = "not connected"


@router.get("/health", response_class=PlainTextResponse, tags=["Health"])
async def health():
    """Liveness of the listener itself, independent of the session."""
    return "OK"


@router.get("/", response_model=RootResponse)
async def root(machine: SessionStateMachine = Depends(get_state_machine)):
    return RootResponse(connected=machine.snapshot().connected)


@router.get("/status", response_model=StatusResponse, tags=["Session"])
async def get_status(machine: SessionStateMachine = Depends(get_state_machine)):
    state = machine.snapshot()
    return StatusResponse(connected=state.connected, phoneNumber=state.identifier)


@router.get(
    "/qr",
    response_model=QRResponse,
    response_model_exclude_none=True,
    tags=["Session"],
)
async def get_qr(machine: SessionStateMachine = Depends(get_state_machine)):
    """Current pairing code image.

    "Already connected" and "not available yet" are normal states while a
    front-end polls this endpoint, so both come back as 200 with an ``error``
    field rather than as HTTP errors.
    """
    state = machine.snapshot()
    if state.connected:
        return QRResponse(error=ALREADY_CONNECTED)
    if not state.pairing_image:
        return QRResponse(error=QR_NOT_AVAILABLE)
    return QRResponse(qr=state.pairing_image)


@router.post(
    "/send",
    response_model=SendResponse,
    responses={503: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Messages"],
)
async def send_message(
    body: SendRequest,
    machine: SessionStateMachine = Depends(get_state_machine),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    """Send a text message to a phone number or chat address."""
    if not machine.snapshot().connected:
        return JSONResponse(status_code=503, content={"error": NOT_CONNECTED})

    chat_id = to_chat_id(body.phone)
    try:
        await coordinator.send_message(chat_id, body.message)
    except Exception as e:
        logger.error("Send to %s failed: %s", chat_id, e)
        return JSONResponse(status_code=500, content={"error": str(e) or type(e).__name__})
    return SendResponse()


@router.post(
    "/session/start",
    response_model=SessionStartResponse,
    response_model_exclude_none=True,
    tags=["Session"],
)
async def start_session(
    machine: SessionStateMachine = Depends(get_state_machine),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    """Re-trigger session initialization after a failure or disconnect."""
    if machine.snapshot().connected:
        return SessionStartResponse(started=False, error=ALREADY_CONNECTED)
    return SessionStartResponse(started=coordinator.start_session())
