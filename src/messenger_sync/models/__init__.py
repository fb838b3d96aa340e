"""Data models and transfer objects."""

from .events import BanNotice, ConnectionState, InboundEvent, NewMessage
from .message import (
    ActionResult,
    ChatMessage,
    ConversationKind,
    ConversationSummary,
    ConversationTarget,
    UserSummary,
)

__all__ = [
    # Message models
    "ChatMessage",
    "ConversationKind",
    "ConversationSummary",
    "ConversationTarget",
    "UserSummary",
    "ActionResult",
    # Push events
    "BanNotice",
    "ConnectionState",
    "InboundEvent",
    "NewMessage",
]
