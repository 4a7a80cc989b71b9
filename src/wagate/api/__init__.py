# wagate HTTP API
# Created: 2026-10-19
#
# Routes are plain module-level FastAPI routers; create_app() wires them to the
# process's session state machine and lifecycle coordinator.

from wagate.api.app import create_app

__all__ = ["create_app"]
