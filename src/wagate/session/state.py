"""Session State Store.

One ``SessionStateMachine`` exists per process. It is written only by the
session event bridge (one transition method per lifecycle event) and read by
HTTP handlers through ``snapshot()``. Every transition is a single synchronous
step, so a reader on the same event loop never observes a half-applied change.

Invariants kept by every transition:

* ``connected`` implies ``pairing_image is None``
* ``initializing`` implies ``not connected``

Created: 2026-10-19
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    PAIRING_ISSUED = "pairing_issued"
    AUTHENTICATING = "authenticating"
    READY = "ready"
    FAILED = "failed"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class SessionState:
    phase: SessionPhase = SessionPhase.UNAUTHENTICATED
    connected: bool = False
    pairing_image: str | None = None
    identifier: str | None = None
    initializing: bool = False


class SessionStateMachine:
    """Owns the current ``SessionState`` and applies lifecycle transitions."""

    def __init__(self) -> None:
        self._state = SessionState()

    def snapshot(self) -> SessionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state.connected

    @property
    def initializing(self) -> bool:
        return self._state.initializing

    def _apply(self, **changes) -> None:
        self._state = dataclasses.replace(self._state, **changes)

    # -- re-entrancy guard ---------------------------------------------------

    def begin_initializing(self) -> bool:
        """Claim the right to construct a session client.

        Returns False, leaving state untouched, while another initialization
        is still in flight.
        """
        if self._state.initializing:
            return False
        self._apply(
            phase=SessionPhase.UNAUTHENTICATED,
            connected=False,
            pairing_image=None,
            identifier=None,
            initializing=True,
        )
        return True

    def initialization_failed(self, reason: str) -> None:
        logger.warning("Session initialization failed: %s", reason)
        self._apply(phase=SessionPhase.FAILED, pairing_image=None, initializing=False)

    # -- lifecycle events ----------------------------------------------------

    def pairing_issued(self, image: str) -> None:
        if self._state.connected:
            logger.debug("Ignoring pairing code received while connected")
            return
        self._apply(phase=SessionPhase.PAIRING_ISSUED, pairing_image=image)

    def authenticated(self) -> None:
        # The pairing image stays visible until ready
        if self._state.connected:
            return
        self._apply(phase=SessionPhase.AUTHENTICATING)

    def ready(self, identifier: str) -> None:
        self._apply(
            phase=SessionPhase.READY,
            connected=True,
            identifier=identifier,
            pairing_image=None,
            initializing=False,
        )

    def auth_failed(self, reason: str) -> None:
        logger.warning("Session authentication failed: %s", reason)
        self._apply(
            phase=SessionPhase.FAILED,
            connected=False,
            pairing_image=None,
            initializing=False,
        )

    def disconnected(self, reason: str) -> None:
        logger.info("Session disconnected: %s", reason)
        self._apply(
            phase=SessionPhase.DISCONNECTED,
            connected=False,
            identifier=None,
            pairing_image=None,
            initializing=False,
        )

    def reset(self) -> None:
        self._state = SessionState()
