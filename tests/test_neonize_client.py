# Tests for the neonize-backed session client.
# Created: 2026-10-19
#
# neonize itself is not started here: the tests cover event translation and
# the hand-off of callbacks onto the gateway loop.

import asyncio
import concurrent.futures
import threading
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from wagate.session.neonize_client import (
    NeonizeSessionClient,
    extract_text,
    to_inbound_event,
)


def _message(conversation="", extended=None):
    return SimpleNamespace(
        conversation=conversation,
        extendedTextMessage=SimpleNamespace(text=extended) if extended is not None else None,
    )


def _message_ev(chat="5511999999999", server="s.whatsapp.net", from_me=False, text="hi",
                pushname="Ana"):
    source = SimpleNamespace(
        Chat=SimpleNamespace(User=chat, Server=server),
        Sender=SimpleNamespace(User=chat, Server=server),
        IsFromMe=from_me,
    )
    info = SimpleNamespace(MessageSource=source, Pushname=pushname)
    return SimpleNamespace(Info=info, Message=_message(conversation=text))


def _jid2string(jid):
    return f"{jid.User}@{jid.Server}"


@pytest.fixture
def listener():
    return MagicMock()


@pytest.fixture
def client(listener):
    return NeonizeSessionClient(listener, db_path="/tmp/test_neonize.sqlite3")


class TestExtractText:
    def test_conversation(self):
        assert extract_text(_message(conversation="hello")) == "hello"

    def test_extended_text(self):
        assert extract_text(_message(extended="quoted reply")) == "quoted reply"

    def test_media_without_caption(self):
        assert extract_text(_message()) == ""


class TestToInboundEvent:
    def test_direct_message(self):
        event = to_inbound_event(_message_ev(), _jid2string)
        assert event.sender_address == "5511999999999@s.whatsapp.net"
        assert event.sender_name == "Ana"
        assert event.body == "hi"
        assert event.from_me is False

    def test_group_message_uses_chat_address(self):
        event = to_inbound_event(_message_ev(chat="120363", server="g.us"), _jid2string)
        assert event.sender_address == "120363@g.us"

    def test_from_me_flag(self):
        assert to_inbound_event(_message_ev(from_me=True), _jid2string).from_me is True

    def test_empty_push_name_is_none(self):
        assert to_inbound_event(_message_ev(pushname=""), _jid2string).sender_name is None

    def test_non_text_message_skipped(self):
        assert to_inbound_event(_message_ev(text=""), _jid2string) is None


class TestCallbackMarshalling:
    async def test_post_runs_on_gateway_loop(self, client):
        client._loop = asyncio.get_running_loop()
        seen = []
        done = asyncio.Event()

        def callback(value):
            seen.append((value, threading.current_thread().name))
            done.set()

        # neonize fires from its own thread
        thread = threading.Thread(target=client._post, args=(callback, "ready"), name="neonize")
        thread.start()
        thread.join()
        await asyncio.wait_for(done.wait(), timeout=1)

        assert seen == [("ready", threading.current_thread().name)]

    def test_post_before_initialize_is_dropped(self, client):
        client._post(MagicMock(side_effect=AssertionError("should not run")), "x")

    async def test_connect_failure_reported_to_listener(self, client, listener):
        client._loop = asyncio.get_running_loop()
        future = concurrent.futures.Future()
        error = RuntimeError("dial tcp: timeout")
        future.set_exception(error)

        client._on_connect_done(future)
        await asyncio.sleep(0)

        listener.on_init_failure.assert_called_once_with(error)

    async def test_cancelled_connect_not_reported(self, client, listener):
        client._loop = asyncio.get_running_loop()
        future = concurrent.futures.Future()
        future.cancel()

        client._on_connect_done(future)
        await asyncio.sleep(0)

        listener.on_init_failure.assert_not_called()


class TestOwnNumber:
    async def test_reads_jid_user(self, client):
        neonize_client = MagicMock()
        neonize_client.get_me = AsyncMock(
            return_value=SimpleNamespace(JID=SimpleNamespace(User="5511999999999"))
        )
        assert await client._own_number(neonize_client) == "5511999999999"

    async def test_unknown_on_error(self, client):
        neonize_client = MagicMock()
        neonize_client.get_me = AsyncMock(side_effect=RuntimeError("not logged in"))
        assert await client._own_number(neonize_client) == "Unknown"


class TestSendAndDestroy:
    async def test_send_before_initialize_raises(self, client):
        with pytest.raises(RuntimeError, match="not initialized"):
            await client.send_message("1@s.whatsapp.net", "hi")

    async def test_destroy_without_client(self, client):
        await client.destroy()
        assert client._client is None

    async def test_destroy_disconnects_on_neonize_loop(self, client):
        neonize_loop = asyncio.new_event_loop()
        thread = threading.Thread(target=neonize_loop.run_forever, daemon=True)
        thread.start()
        try:
            neonize_client = MagicMock()
            neonize_client.disconnect = AsyncMock()
            client._client = neonize_client
            client._neonize_loop = neonize_loop
            connect_future = MagicMock()
            client._connect_future = connect_future

            await client.destroy()

            neonize_client.disconnect.assert_awaited_once()
            connect_future.cancel.assert_called_once()
            assert client._client is None
        finally:
            neonize_loop.call_soon_threadsafe(neonize_loop.stop)
            thread.join(timeout=1)
            neonize_loop.close()
