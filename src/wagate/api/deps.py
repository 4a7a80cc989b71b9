# Shared FastAPI dependencies for the API layer.
# Created: 2026-10-19
#
# The state machine and coordinator live on app.state (set by create_app);
# handlers receive them through these dependencies instead of module globals.

from __future__ import annotations

from fastapi import Request


def get_state_machine(request: Request):
    """The process's ``SessionStateMachine``."""
    return request.app.state.session_state


def get_coordinator(request: Request):
    """The process's ``LifecycleCoordinator``."""
    return request.app.state.coordinator
