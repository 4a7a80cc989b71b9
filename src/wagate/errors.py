# Gateway exception types.
# Created: 2026-10-19

from __future__ import annotations


class WagateError(Exception):
    """Base class for gateway errors."""


class SessionNotReadyError(WagateError):
    """Raised when an operation needs a live session client and none exists."""

    def __init__(self, message: str = "not connected"):
        super().__init__(message)
