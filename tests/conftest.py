# Shared fixtures: a fake SessionClient and a wired-up coordinator.
# Created: 2026-10-19

from unittest.mock import AsyncMock

import pytest

from wagate.config import Settings
from wagate.lifecycle import LifecycleCoordinator
from wagate.session.client import SessionClient
from wagate.session.state import SessionStateMachine
from wagate.webhook import WebhookForwarder


class FakeSessionClient(SessionClient):
    """In-memory SessionClient; tests drive events through ``self.listener``."""

    def __init__(self, listener):
        super().__init__(listener)
        self.initialize = AsyncMock()
        self.send_message = AsyncMock()
        self.destroy = AsyncMock()

    async def initialize(self) -> None:  # replaced per instance
        pass

    async def send_message(self, chat_id: str, text: str) -> None:  # replaced per instance
        pass

    async def destroy(self) -> None:  # replaced per instance
        pass


class FakeClientFactory:
    def __init__(self):
        self.created: list[FakeSessionClient] = []

    def __call__(self, listener):
        client = FakeSessionClient(listener)
        self.created.append(client)
        return client


@pytest.fixture
def settings():
    return Settings(
        host="127.0.0.1",
        port=8080,
        webhook_url=None,
        session_db_path="/tmp/wagate-test.sqlite3",
        session_start_delay=0,
        shutdown_grace=1,
        _env_file=None,
    )


@pytest.fixture
def machine():
    return SessionStateMachine()


@pytest.fixture
def forwarder():
    return WebhookForwarder(None)


@pytest.fixture
def client_factory():
    return FakeClientFactory()


@pytest.fixture
def coordinator(settings, machine, forwarder, client_factory):
    return LifecycleCoordinator(settings, machine, forwarder, client_factory)
