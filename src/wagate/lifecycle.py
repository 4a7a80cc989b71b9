"""Lifecycle Coordinator: startup ordering and shutdown draining.

Startup binds the HTTP listener first, so ``/health`` answers while the
session is still pairing (or has failed). The session client is constructed
only after uvicorn reports the socket is accepting connections, plus a short
configurable delay so the automation runtime doesn't compete with the
listener coming up.

Shutdown (SIGTERM/SIGINT) stops accepting new connections, lets uvicorn drain
in-flight requests, then tears down the session client and the webhook
forwarder. Teardown steps run in order; a failing step is logged and does not
stop the others.

Created: 2026-10-19
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from collections.abc import Callable
from enum import Enum
from typing import Any

import uvicorn

from wagate.config import Settings
from wagate.errors import SessionNotReadyError
from wagate.session.client import InboundMessageEvent, SessionClient, SessionListener
from wagate.session.events import SessionEventHandler
from wagate.session.state import SessionStateMachine
from wagate.webhook import WebhookForwarder

logger = logging.getLogger(__name__)

ClientFactory = Callable[[SessionListener], SessionClient]

_LISTENER_POLL_INTERVAL = 0.05


class CoordinatorPhase(str, Enum):
    LISTENER_DOWN = "listener_down"
    LISTENER_UP = "listener_up"
    SESSION_STARTING = "session_starting"
    SESSION_ACTIVE = "session_active"


class GatewayServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the coordinator."""

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class ClientListener:
    """Listener handed to one session client.

    Forwards to the coordinator's event handler only while that client is
    the current one, so late callbacks from a replaced or destroyed client
    cannot touch the state store.
    """

    def __init__(self, coordinator: LifecycleCoordinator, generation: int):
        self._coordinator = coordinator
        self.generation = generation

    def _forward(self, event: str, *args) -> None:
        if not self._coordinator.is_current(self.generation):
            logger.debug("Dropping %s from superseded session client", event)
            return
        getattr(self._coordinator.listener, event)(*args)

    def on_qr(self, code: str) -> None:
        self._forward("on_qr", code)

    def on_authenticated(self) -> None:
        self._forward("on_authenticated")

    def on_ready(self, identifier: str) -> None:
        self._forward("on_ready", identifier)

    def on_auth_failure(self, reason: str) -> None:
        self._forward("on_auth_failure", reason)

    def on_disconnected(self, reason: str) -> None:
        self._forward("on_disconnected", reason)

    def on_message(self, event: InboundMessageEvent) -> None:
        self._forward("on_message", event)

    def on_init_failure(self, error: BaseException) -> None:
        self._forward("on_init_failure", error)


class LifecycleCoordinator:
    """Owns the session client and sequences startup and shutdown."""

    def __init__(
        self,
        settings: Settings,
        machine: SessionStateMachine,
        forwarder: WebhookForwarder,
        client_factory: ClientFactory,
    ):
        self.settings = settings
        self.machine = machine
        self.forwarder = forwarder
        self.listener = SessionEventHandler(machine, forwarder)
        self.client: SessionClient | None = None
        self.phase = CoordinatorPhase.LISTENER_DOWN

        self._client_factory = client_factory
        self._server: uvicorn.Server | None = None
        self._start_task: asyncio.Task | None = None
        self._init_task: asyncio.Task | None = None
        self._generation = 0

    # -- startup ---------------------------------------------------------------

    def build_server(self, app: Any) -> uvicorn.Server:
        config = uvicorn.Config(
            app,
            host=self.settings.host,
            port=self.settings.port,
            log_config=None,
            timeout_graceful_shutdown=int(self.settings.shutdown_grace),
        )
        return GatewayServer(config)

    async def run(self, app: Any) -> int:
        """Serve *app* until a termination signal arrives. Returns the exit code."""
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(self._handle_loop_exception)
        self._install_signal_handlers(loop)

        self._server = self.build_server(app)
        server_task = asyncio.create_task(self._server.serve(), name="http-listener")
        try:
            if await self._wait_for_listener(server_task):
                self.phase = CoordinatorPhase.LISTENER_UP
                logger.info("Server on %s:%s", self.settings.host, self.settings.port)
                self._start_task = asyncio.create_task(self._start_after_delay())
            await server_task
        finally:
            await self.teardown()
        return 0

    async def _wait_for_listener(self, server_task: asyncio.Task) -> bool:
        while not server_task.done():
            if self._server is not None and self._server.started:
                return True
            await asyncio.sleep(_LISTENER_POLL_INTERVAL)
        return False

    async def _start_after_delay(self) -> None:
        await asyncio.sleep(self.settings.session_start_delay)
        if self._server is not None and self._server.should_exit:
            return
        self.start_session()

    def start_session(self) -> bool:
        """Construct and initialize a session client unless one is already starting.

        Returns True if a new initialization was started. There is no
        automatic retry: after a failure or disconnect this must be called
        again explicitly.
        """
        if self.machine.connected:
            logger.info("Session already connected, not re-initializing")
            return False
        if not self.machine.begin_initializing():
            logger.info("Session initialization already in progress")
            return False

        self.phase = CoordinatorPhase.SESSION_STARTING
        self._init_task = asyncio.create_task(self._initialize(), name="session-init")
        return True

    async def _initialize(self) -> None:
        # Events still queued by an older client are dropped from here on
        self._generation += 1
        listener = ClientListener(self, self._generation)
        try:
            previous, self.client = self.client, None
            if previous is not None:
                await self._destroy(previous)

            client = self._client_factory(listener)
            self.client = client
            await client.initialize()
        except Exception as e:
            logger.error("Error initializing session: %s", e, exc_info=True)
            listener.on_init_failure(e)
            return
        self.phase = CoordinatorPhase.SESSION_ACTIVE

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    # -- operations ------------------------------------------------------------

    async def send_message(self, chat_id: str, text: str) -> None:
        if self.client is None:
            raise SessionNotReadyError()
        await self.client.send_message(chat_id, text)

    # -- shutdown --------------------------------------------------------------

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig)
            except NotImplementedError:
                # Windows: no loop signal support
                signal.signal(
                    sig, lambda s, _frame: loop.call_soon_threadsafe(self.request_shutdown, s)
                )

    def request_shutdown(self, sig: int | None = None) -> None:
        if self._server is None:
            return
        if self._server.should_exit:
            # Second signal: stop waiting for connections to drain
            self._server.force_exit = True
            return
        name = signal.Signals(sig).name if sig is not None else "shutdown request"
        logger.info("%s received, draining HTTP connections", name)
        self._server.should_exit = True

    async def teardown(self) -> None:
        """Release the session client and the forwarder."""
        if self._start_task is not None and not self._start_task.done():
            self._start_task.cancel()

        steps: list[tuple[str, Callable[[], Any]]] = [
            ("session client", self._destroy_current_client),
            ("webhook forwarder", lambda: self.forwarder.aclose(self.settings.shutdown_grace)),
            ("session state", self.machine.reset),
        ]
        for name, step in steps:
            try:
                result = step()
                if asyncio.iscoroutine(result):
                    await result
                logger.debug("Shut down %s", name)
            except Exception:
                logger.warning("Error shutting down %s", name, exc_info=True)

        self.phase = CoordinatorPhase.LISTENER_DOWN

    async def _destroy_current_client(self) -> None:
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._init_task

        self._generation += 1
        client, self.client = self.client, None
        if client is None:
            logger.debug("No session client was constructed, skipping destroy")
            return
        await self._destroy(client)

    async def _destroy(self, client: SessionClient) -> None:
        try:
            await client.destroy()
        except Exception as e:
            logger.warning("Error destroying session client: %s", e)

    # -- fault isolation ---------------------------------------------------------

    def _handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        """Log uncaught async faults; the process keeps serving."""
        exc = context.get("exception")
        logger.error(
            "Unhandled async error: %s",
            context.get("message", "unknown"),
            exc_info=(type(exc), exc, exc.__traceback__) if exc else None,
        )
