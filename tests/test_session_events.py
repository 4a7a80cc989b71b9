# Tests for the session event bridge and pairing-code rendering.
# Created: 2026-10-19

import base64
from unittest.mock import MagicMock

from wagate.qr import render_data_uri
from wagate.session.client import InboundMessageEvent
from wagate.session.events import SessionEventHandler
from wagate.session.state import SessionPhase


def _handler(machine, forwarder=None):
    return SessionEventHandler(
        machine,
        forwarder or MagicMock(),
        render_qr=lambda code: f"data:image/png;base64,{code}",
    )


class TestEventBridge:
    def test_qr_renders_and_stores_image(self, machine):
        handler = _handler(machine)
        handler.on_qr("2@abc,def")
        assert machine.snapshot().pairing_image == "data:image/png;base64,2@abc,def"

    def test_full_pairing_flow(self, machine):
        handler = _handler(machine)
        machine.begin_initializing()
        handler.on_qr("code")
        handler.on_authenticated()
        assert machine.snapshot().phase == SessionPhase.AUTHENTICATING
        handler.on_ready("5511999999999")
        state = machine.snapshot()
        assert state.connected is True
        assert state.identifier == "5511999999999"
        assert state.pairing_image is None

    def test_auth_failure(self, machine):
        handler = _handler(machine)
        handler.on_qr("code")
        handler.on_auth_failure("revoked")
        assert machine.snapshot().phase == SessionPhase.FAILED

    def test_disconnect(self, machine):
        handler = _handler(machine)
        handler.on_ready("123")
        handler.on_disconnected("NAVIGATION")
        assert machine.snapshot().connected is False
        assert machine.snapshot().identifier is None

    def test_init_failure_clears_initializing(self, machine):
        handler = _handler(machine)
        machine.begin_initializing()
        handler.on_init_failure(RuntimeError("no browser"))
        assert machine.initializing is False

    def test_init_failure_without_message(self, machine):
        handler = _handler(machine)
        machine.begin_initializing()
        handler.on_init_failure(TimeoutError())
        assert machine.initializing is False

    def test_message_goes_to_forwarder(self, machine):
        forwarder = MagicMock()
        handler = _handler(machine, forwarder)
        event = InboundMessageEvent(sender_address="1@s.whatsapp.net", body="hi")
        handler.on_message(event)
        forwarder.forward.assert_called_once_with(event)

    def test_message_does_not_touch_state(self, machine):
        handler = _handler(machine)
        before = machine.snapshot()
        handler.on_message(InboundMessageEvent(sender_address="1@s.whatsapp.net", body="hi"))
        assert machine.snapshot() == before


class TestRenderDataUri:
    def test_png_data_uri(self):
        uri = render_data_uri("2@Zk3Jq0example,AbCd==,EfGh==,1")
        prefix = "data:image/png;base64,"
        assert uri.startswith(prefix)
        raw = base64.b64decode(uri[len(prefix):])
        assert raw.startswith(b"\x89PNG")

    def test_deterministic(self):
        assert render_data_uri("same") == render_data_uri("same")
