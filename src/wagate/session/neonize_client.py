"""WhatsApp session client backed by neonize (WhatsApp Web multi-device).

neonize wraps whatsmeow and handles QR pairing, the wire protocol and
credential storage (a local SQLite file). It dispatches all callbacks on its
own asyncio loop running in a daemon thread; this client re-posts every
notification onto the gateway's loop so the listener only ever runs there.

Created: 2026-10-19
"""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from typing import Any

from wagate.session.client import InboundMessageEvent, SessionClient, SessionListener

logger = logging.getLogger(__name__)

UNKNOWN_IDENTIFIER = "Unknown"

# Module-level lock: neonize's event_global_loop must be started exactly once
_neonize_loop_started = False
_neonize_loop_lock = threading.Lock()


def _ensure_neonize_loop_running() -> None:
    """Start neonize's internal event loop in a daemon thread if not already running.

    neonize dispatches QR callbacks, message events, etc. through
    ``event_global_loop`` via run_coroutine_threadsafe(). Nothing fires until
    that loop runs, and neonize does not start it on its own.
    """
    global _neonize_loop_started
    if _neonize_loop_started:
        return
    with _neonize_loop_lock:
        if _neonize_loop_started:
            return
        from neonize.aioze.events import event_global_loop

        thread = threading.Thread(
            target=event_global_loop.run_forever,
            daemon=True,
            name="neonize-event-loop",
        )
        thread.start()
        _neonize_loop_started = True
        logger.debug("neonize event_global_loop started in background thread")


def extract_text(message: Any) -> str:
    """Plain text of a WhatsApp message protobuf, or '' for non-text messages."""
    text = message.conversation
    if not text and message.extendedTextMessage:
        text = message.extendedTextMessage.text
    return text or ""


def to_inbound_event(event: Any, jid2string) -> InboundMessageEvent | None:
    """Translate a neonize ``MessageEv`` into an ``InboundMessageEvent``.

    The sender address is the chat JID, so group messages carry the group
    address (``...@g.us``) rather than the individual author.
    """
    info = event.Info
    source = info.MessageSource
    body = extract_text(event.Message)
    if not body:
        return None
    return InboundMessageEvent(
        sender_address=jid2string(source.Chat),
        sender_name=getattr(info, "Pushname", None) or None,
        body=body,
        from_me=bool(source.IsFromMe),
    )


class NeonizeSessionClient(SessionClient):
    """``SessionClient`` implementation on top of ``neonize.aioze``."""

    def __init__(
        self,
        listener: SessionListener,
        db_path: str,
        send_timeout: float = 30.0,
    ):
        super().__init__(listener)
        self.db_path = db_path
        self.send_timeout = send_timeout
        self._client: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None  # gateway loop
        self._neonize_loop: Any = None
        self._connect_future: Any = None

    def _post(self, callback, *args) -> None:
        """Run a listener callback on the gateway loop."""
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(callback, *args)

    async def initialize(self) -> None:
        from neonize.aioze.client import NewAClient
        from neonize.aioze.events import (
            ConnectedEv,
            DisconnectedEv,
            LoggedOutEv,
            MessageEv,
            PairStatusEv,
            event_global_loop,
        )
        from neonize.utils.jid import Jid2String

        self._loop = asyncio.get_running_loop()
        _ensure_neonize_loop_running()

        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        client = NewAClient(self.db_path)
        session = self  # closure reference
        listener = self.listener

        @client.qr
        async def on_qr(client: Any, qr_data: bytes):
            code = qr_data.decode("utf-8") if isinstance(qr_data, bytes) else str(qr_data)
            session._post(listener.on_qr, code)

        @client.event(PairStatusEv)
        async def on_pair_status(client: Any, event: Any):
            error = getattr(event, "Error", "")
            if error:
                session._post(listener.on_auth_failure, str(error))
            else:
                session._post(listener.on_authenticated)

        @client.event(ConnectedEv)
        async def on_connected(client: Any, event: Any):
            identifier = await session._own_number(client)
            session._post(listener.on_ready, identifier)

        @client.event(LoggedOutEv)
        async def on_logged_out(client: Any, event: Any):
            session._post(listener.on_auth_failure, f"logged out ({event.Reason})")

        @client.event(DisconnectedEv)
        async def on_disconnected(client: Any, event: Any):
            session._post(listener.on_disconnected, "connection closed")

        @client.event(MessageEv)
        async def on_message(client: Any, event: Any):
            try:
                inbound = to_inbound_event(event, Jid2String)
            except Exception:
                logger.exception("Error processing neonize message")
                return
            if inbound is not None:
                session._post(listener.on_message, inbound)

        self._client = client
        self._neonize_loop = event_global_loop

        # connect() runs on neonize's loop, not ours
        future = asyncio.run_coroutine_threadsafe(client.connect(), event_global_loop)
        future.add_done_callback(self._on_connect_done)
        self._connect_future = future
        logger.info("WhatsApp session starting (credentials: %s)", self.db_path)

    def _on_connect_done(self, future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error("neonize connect failed: %s", error)
            self._post(self.listener.on_init_failure, error)

    async def _own_number(self, client: Any) -> str:
        try:
            me = await client.get_me()
            return me.JID.User or UNKNOWN_IDENTIFIER
        except Exception as e:
            logger.warning("Could not read own WhatsApp number: %s", e)
            return UNKNOWN_IDENTIFIER

    async def _on_neonize_loop(self, coro, timeout: float):
        future = asyncio.run_coroutine_threadsafe(coro, self._neonize_loop)
        return await asyncio.wait_for(asyncio.wrap_future(future), timeout=timeout)

    async def send_message(self, chat_id: str, text: str) -> None:
        if self._client is None:
            raise RuntimeError("session client is not initialized")
        from neonize.utils.jid import build_jid

        user, server = chat_id.split("@", 1)
        jid = build_jid(user, server)
        await self._on_neonize_loop(self._client.send_message(jid, text), self.send_timeout)

    async def destroy(self) -> None:
        if self._client is not None and self._neonize_loop is not None:
            try:
                await self._on_neonize_loop(self._client.disconnect(), timeout=5)
            except Exception as e:
                logger.debug("neonize disconnect: %s", e)

        if self._connect_future is not None:
            self._connect_future.cancel()

        self._client = None
        logger.info("WhatsApp session destroyed")
