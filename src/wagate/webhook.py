"""Webhook Forwarder: best-effort notification of inbound messages.

Each accepted message becomes one detached POST. The outcome is logged and
then forgotten: no retry, no backoff, no ordering across messages, and nothing
is ever reported back to whoever triggered the delivery.

Created: 2026-10-19
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from wagate.session.client import InboundMessageEvent, is_group_address

logger = logging.getLogger(__name__)

DEFAULT_SENDER_NAME = "Unknown"


def build_payload(event: InboundMessageEvent) -> dict[str, Any]:
    return {
        "phone": event.sender_address,
        "name": event.sender_name or DEFAULT_SENDER_NAME,
        "message": event.body,
        "timestamp": event.received_at.isoformat(),
    }


class WebhookForwarder:
    """Posts inbound messages to ``url`` as JSON, fire-and-forget."""

    def __init__(
        self,
        url: str | None,
        timeout: float = 10.0,
        http: httpx.AsyncClient | None = None,
    ):
        self.url = url or None
        self._http = http
        self._timeout = timeout
        # Strong refs so pending deliveries aren't garbage-collected mid-flight
        self._tasks: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self.url is not None

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def should_forward(self, event: InboundMessageEvent) -> bool:
        if event.from_me or is_group_address(event.sender_address):
            return False
        return self.enabled

    def forward(self, event: InboundMessageEvent) -> bool:
        """Schedule delivery of *event*. Returns True if a POST was scheduled.

        Must be called from within the running event loop. Never raises for
        delivery problems and never waits for the POST.
        """
        if not self.should_forward(event):
            return False

        task = asyncio.create_task(self._deliver(build_payload(event)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout)
        return self._http

    async def _deliver(self, payload: dict[str, Any]) -> None:
        try:
            resp = await self._client().post(self.url, json=payload)
            resp.raise_for_status()
            logger.debug("Webhook delivered (%s) for %s", resp.status_code, payload["phone"])
        except httpx.HTTPStatusError as e:
            logger.error("Webhook error: HTTP %s from %s", e.response.status_code, self.url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("Webhook error: %s", e)

    async def aclose(self, grace: float = 5.0) -> None:
        """Give in-flight deliveries up to *grace* seconds, then close the client."""
        if self._tasks:
            done, pending = await asyncio.wait(set(self._tasks), timeout=grace)
            for task in pending:
                task.cancel()
            if pending:
                logger.warning("Dropped %d undelivered webhook(s) on shutdown", len(pending))
        if self._http is not None:
            await self._http.aclose()
            self._http = None
