# Session event bridge: SessionClient notifications -> state store / forwarder.
# Created: 2026-10-19

from __future__ import annotations

import logging
from collections.abc import Callable

from wagate.qr import render_data_uri
from wagate.session.client import InboundMessageEvent
from wagate.session.state import SessionStateMachine
from wagate.webhook import WebhookForwarder

logger = logging.getLogger(__name__)


class SessionEventHandler:
    """``SessionListener`` that applies each event to the state machine."""

    def __init__(
        self,
        machine: SessionStateMachine,
        forwarder: WebhookForwarder,
        render_qr: Callable[[str], str] = render_data_uri,
    ):
        self.machine = machine
        self.forwarder = forwarder
        self._render_qr = render_qr

    def on_qr(self, code: str) -> None:
        logger.info("Pairing code received, scan it with your phone")
        self.machine.pairing_issued(self._render_qr(code))

    def on_authenticated(self) -> None:
        logger.info("Session authenticated")
        self.machine.authenticated()

    def on_ready(self, identifier: str) -> None:
        logger.info("Session ready as %s", identifier)
        self.machine.ready(identifier)

    def on_auth_failure(self, reason: str) -> None:
        self.machine.auth_failed(reason)

    def on_disconnected(self, reason: str) -> None:
        self.machine.disconnected(reason)

    def on_init_failure(self, error: BaseException) -> None:
        self.machine.initialization_failed(str(error) or type(error).__name__)

    def on_message(self, event: InboundMessageEvent) -> None:
        if self.forwarder.forward(event):
            logger.debug("Forwarding message from %s", event.sender_address)
