"""Inbound push events and connection lifecycle state."""

from dataclasses import dataclass
from enum import Enum

from .message import ChatMessage


class ConnectionState(Enum):
    """Lifecycle state of the push connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"


@dataclass(frozen=True)
class NewMessage:
    """A chat message pushed by the server."""

    message: ChatMessage


@dataclass(frozen=True)
class BanNotice:
    """The server banned this account."""

    reason: str


InboundEvent = NewMessage | BanNotice
