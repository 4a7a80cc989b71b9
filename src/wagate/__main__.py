"""wagate entry point.

Starts the HTTP gateway, then the WhatsApp session once the listener is up.
"""

import argparse
import asyncio
import logging
import sys
from functools import partial

from wagate import __version__
from wagate.api import create_app
from wagate.config import Settings, get_settings
from wagate.lifecycle import LifecycleCoordinator
from wagate.logging_setup import setup_logging
from wagate.session.client import SessionListener
from wagate.session.neonize_client import NeonizeSessionClient
from wagate.session.state import SessionStateMachine
from wagate.webhook import WebhookForwarder

logger = logging.getLogger(__name__)


def _neonize_factory(settings: Settings, listener: SessionListener) -> NeonizeSessionClient:
    return NeonizeSessionClient(
        listener,
        db_path=settings.session_db_path,
        send_timeout=settings.send_timeout,
    )


def build_gateway(settings: Settings, client_factory=None):
    """Wire the state machine, forwarder, coordinator and app together."""
    machine = SessionStateMachine()
    forwarder = WebhookForwarder(settings.webhook_url, timeout=settings.webhook_timeout)
    coordinator = LifecycleCoordinator(
        settings,
        machine,
        forwarder,
        client_factory or partial(_neonize_factory, settings),
    )
    app = create_app(machine, coordinator)
    return app, coordinator


async def serve(settings: Settings) -> int:
    app, coordinator = build_gateway(settings)
    if settings.webhook_url:
        logger.info("Forwarding inbound messages to %s", settings.webhook_url)
    else:
        logger.info("WEBHOOK_URL not set, inbound messages will not be forwarded")
    return await coordinator.run(app)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="wagate - HTTP gateway for a WhatsApp Web session",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  PORT          HTTP port (default 8080)
  WEBHOOK_URL   where inbound messages are POSTed (optional)
""",
    )
    parser.add_argument("--host", type=str, default=None, help="Host to bind (default: 0.0.0.0)")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port (default: $PORT or 8080)")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (default: INFO)")
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args()

    overrides = {
        key: value
        for key, value in (("host", args.host), ("port", args.port), ("log_level", args.log_level))
        if value is not None
    }
    settings = get_settings()
    if overrides:
        settings = settings.model_copy(update=overrides)

    setup_logging(level=settings.log_level)
    sys.exit(asyncio.run(serve(settings)))


if __name__ == "__main__":
    main()
