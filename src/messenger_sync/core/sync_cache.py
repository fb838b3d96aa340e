"""Session sync cache: the message view of the open conversation.

Messages arrive from two sources, full pulls over the request/response API
and single pushes over the socket, and are deduplicated by ``id``. Ordering
is newest-first by insertion: a merged message goes to the head and no
re-sorting by timestamp happens.

A full pull replaces the cache with the server's list. Pushes merged while a
pull was in flight are re-applied on top of that list when the server did
not include them, so a pull that started before a push cannot erase it. A
pull that completes after the cache was cleared (conversation changed) is
discarded.

The cache is owned by the consumer and is not thread-safe.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from messenger_sync.models.message import ChatMessage, ConversationKind, ConversationTarget


def is_relevant(message: ChatMessage, target: ConversationTarget | None) -> bool:
    """Return True if a pushed message belongs to the open conversation.

    Group conversations match on recipient; direct conversations match when
    the peer is either sender or recipient. Comparison ignores case.
    """
    if target is None or not target.display_name:
        return False

    name = target.display_name.casefold()
    if target.kind is ConversationKind.GROUP:
        return message.recipient.casefold() == name

    return message.sender.casefold() == name or message.recipient.casefold() == name


def merge(existing: Sequence[ChatMessage], incoming: ChatMessage) -> list[ChatMessage]:
    """Return ``existing`` with ``incoming`` at the head unless its id is present.

    A message already cached is never replaced; the first copy wins.
    """
    if any(message.id == incoming.id for message in existing):
        return list(existing)
    return [incoming, *existing]


def _dedupe(messages: Iterable[ChatMessage]) -> list[ChatMessage]:
    seen: set[str] = set()
    result: list[ChatMessage] = []
    for message in messages:
        if message.id not in seen:
            seen.add(message.id)
            result.append(message)
    return result


@dataclass(frozen=True)
class PullTicket:
    """Handle for one in-flight pull."""

    generation: int
    push_mark: int


class MessageCache:
    """Ordered, deduplicated messages for the open conversation."""

    def __init__(self) -> None:
        self._messages: list[ChatMessage] = []
        self._ids: set[str] = set()
        self._generation = 0
        self._push_seq = 0
        self._push_log: list[tuple[int, ChatMessage]] = []
        self._open_pulls: list[PullTicket] = []

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def generation(self) -> int:
        return self._generation

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._ids

    def merge(self, message: ChatMessage, *, pushed: bool = False) -> bool:
        """Insert a message at the head if its id is new.

        Args:
            message: Message to merge.
            pushed: True when it came from the push socket. Pushed messages
                are remembered while pulls are in flight.

        Returns:
            True if the cache changed.
        """
        if pushed:
            self._push_seq += 1
            if self._open_pulls:
                self._push_log.append((self._push_seq, message))

        if message.id in self._ids:
            return False

        self._messages.insert(0, message)
        self._ids.add(message.id)
        return True

    def clear(self) -> None:
        """Empty the cache and invalidate every in-flight pull."""
        self._messages.clear()
        self._ids.clear()
        self._push_log.clear()
        self._open_pulls.clear()
        self._generation += 1

    def begin_pull(self) -> PullTicket:
        ticket = PullTicket(generation=self._generation, push_mark=self._push_seq)
        self._open_pulls.append(ticket)
        return ticket

    def abandon_pull(self, ticket: PullTicket) -> None:
        """Forget a pull that failed."""
        self._close_ticket(ticket)

    def complete_pull(self, ticket: PullTicket, pulled: Sequence[ChatMessage]) -> bool:
        """Replace the cache with a pull result.

        Args:
            ticket: Ticket returned by ``begin_pull``.
            pulled: Server-ordered messages, newest first.

        Returns:
            False if the pull was stale and discarded.
        """
        if ticket.generation != self._generation:
            return False

        late_pushes = [message for seq, message in self._push_log if seq > ticket.push_mark]
        self._close_ticket(ticket)

        self._messages = _dedupe(pulled)
        self._ids = {message.id for message in self._messages}
        for message in late_pushes:
            if message.id not in self._ids:
                self._messages.insert(0, message)
                self._ids.add(message.id)
        return True

    def _close_ticket(self, ticket: PullTicket) -> None:
        if ticket in self._open_pulls:
            self._open_pulls.remove(ticket)
        if not self._open_pulls:
            self._push_log.clear()
            return
        oldest = min(t.push_mark for t in self._open_pulls)
        self._push_log = [(seq, m) for seq, m in self._push_log if seq > oldest]
