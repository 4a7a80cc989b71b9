"""Session Client contract.

The gateway never speaks the WhatsApp protocol itself. A ``SessionClient``
owns the real connection and reports what happens to it through a
``SessionListener``. Listener callbacks are plain synchronous functions and
are always invoked on the gateway's event loop, so they may touch gateway
state directly and schedule tasks, but must not block.

Created: 2026-10-19
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

INDIVIDUAL_SERVER = "s.whatsapp.net"
GROUP_SERVER = "g.us"


def to_chat_id(phone: str) -> str:
    """Qualify a bare phone number as an individual chat address.

    Values that already carry a server part (``user@server``) are returned
    unchanged, so the suffix is never appended twice.
    """
    phone = phone.strip()
    if "@" in phone:
        return phone
    return f"{phone}@{INDIVIDUAL_SERVER}"


def is_group_address(address: str) -> bool:
    return f"@{GROUP_SERVER}" in address


@dataclass(frozen=True)
class InboundMessageEvent:
    """A text message received by the session. Consumed once, never stored."""

    sender_address: str
    body: str
    sender_name: str | None = None
    from_me: bool = False
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class SessionListener(Protocol):
    """Receiver for session lifecycle notifications."""

    def on_qr(self, code: str) -> None: ...

    def on_authenticated(self) -> None: ...

    def on_ready(self, identifier: str) -> None: ...

    def on_auth_failure(self, reason: str) -> None: ...

    def on_disconnected(self, reason: str) -> None: ...

    def on_message(self, event: InboundMessageEvent) -> None: ...

    def on_init_failure(self, error: BaseException) -> None: ...


class SessionClient(ABC):
    """A single messaging session driven by an external automation library."""

    def __init__(self, listener: SessionListener):
        self.listener = listener

    @abstractmethod
    async def initialize(self) -> None:
        """Start connecting. Returns once the connection attempt is underway."""

    @abstractmethod
    async def send_message(self, chat_id: str, text: str) -> None:
        """Send *text* to *chat_id*. Raises on failure."""

    @abstractmethod
    async def destroy(self) -> None:
        """Disconnect and release the underlying runtime."""
