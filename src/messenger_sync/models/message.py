"""Data models for chat messages and conversations."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ConversationKind(Enum):
    """Kind of a conversation thread."""

    DIRECT = "direct"
    GROUP = "group"


@dataclass(frozen=True)
class ChatMessage:
    """A single chat message, pulled or pushed.

    Two messages with the same ``id`` are the same message regardless of
    where they came from.
    """

    id: str
    sender: str
    recipient: str  # Peer name for direct chats, group name for groups
    body: str
    sent_at: int


@dataclass(frozen=True)
class ConversationTarget:
    """The currently open conversation."""

    id: str
    kind: ConversationKind
    display_name: str


@dataclass(frozen=True)
class ConversationSummary:
    """A conversation as listed by the API."""

    id: str
    name: str
    kind: ConversationKind

    def as_target(self) -> ConversationTarget:
        """Build the target used to open this conversation."""
        return ConversationTarget(id=self.id, kind=self.kind, display_name=self.name)


@dataclass(frozen=True)
class UserSummary:
    """A user returned by a search."""

    id: str
    username: str


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a user-initiated client operation."""

    ok: bool
    error: str | None = None
    value: Any = None

    @classmethod
    def success(cls, value: Any = None) -> "ActionResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "ActionResult":
        return cls(ok=False, error=error)
