"""WhatsApp session: client contract and state store.

The event bridge lives in ``wagate.session.events`` and is imported from
there directly (it depends on the webhook forwarder).
"""

from wagate.session.client import (
    InboundMessageEvent,
    SessionClient,
    SessionListener,
    is_group_address,
    to_chat_id,
)
from wagate.session.state import SessionPhase, SessionState, SessionStateMachine

__all__ = [
    "InboundMessageEvent",
    "SessionClient",
    "SessionListener",
    "SessionPhase",
    "SessionState",
    "SessionStateMachine",
    "is_group_address",
    "to_chat_id",
]
