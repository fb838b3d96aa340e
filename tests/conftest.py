"""Shared test fixtures for messenger-sync."""

from __future__ import annotations

import asyncio
import json
from collections import deque
from collections.abc import Callable, Iterable
from typing import Any

import pytest

from messenger_sync.core.decoder import PushMessageDecoder
from messenger_sync.core.event_queue import EventQueue
from messenger_sync.core.session import SessionGate
from messenger_sync.models.message import ChatMessage, ConversationKind, ConversationTarget
from messenger_sync.utils.async_helpers import TransportClosed, TransportError


class FakeConnection:
    """In-memory push connection.

    Frames fed with ``feed`` are returned by ``recv`` in order. Feeding an
    exception makes ``recv`` raise it, which is how tests drop the socket.
    """

    def __init__(self, frames: Iterable[str | bytes] = ()) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._inbox: asyncio.Queue[str | bytes | Exception] = asyncio.Queue()
        for frame in frames:
            self._inbox.put_nowait(frame)

    def feed(self, frame: str | bytes) -> None:
        self._inbox.put_nowait(frame)

    def drop(self, error: Exception | None = None) -> None:
        self._inbox.put_nowait(error or TransportClosed("closed by server"))

    async def recv(self) -> str | bytes:
        item = await self._inbox.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def send(self, text: str) -> None:
        if self.closed:
            raise TransportError("send on closed connection")
        self.sent.append(text)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._inbox.put_nowait(TransportClosed("closed locally"))


class FakeTransport:
    """Push transport returning scripted outcomes, one per connect.

    Once the script is exhausted every connect fails.
    """

    def __init__(self, outcomes: Iterable[FakeConnection | Exception] = ()) -> None:
        self.outcomes: deque[FakeConnection | Exception] = deque(outcomes)
        self.connect_calls = 0
        self.connections: list[FakeConnection] = []

    async def connect(self) -> FakeConnection:
        self.connect_calls += 1
        outcome = self.outcomes.popleft() if self.outcomes else TransportError("refused")
        if isinstance(outcome, Exception):
            raise outcome
        self.connections.append(outcome)
        return outcome


def message_frame(message_id: str, sender: str = "bob", recipient: str = "alice") -> str:
    """Build a ``new_message`` push frame."""
    return json.dumps(
        {
            "type": "new_message",
            "message": {
                "id": message_id,
                "from": sender,
                "to": recipient,
                "content": f"hello {message_id}",
                "timestamp": 1700000000,
            },
        }
    )


def ban_frame(reason: str | None = "spam") -> str:
    payload: dict[str, Any] = {"type": "banned"}
    if reason is not None:
        payload["reason"] = reason
    return json.dumps(payload)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``predicate`` on the running loop until it holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def make_message() -> Callable[..., ChatMessage]:
    """Return a factory for chat messages."""

    def _make(
        message_id: str,
        sender: str = "bob",
        recipient: str = "alice",
        body: str | None = None,
        sent_at: int = 1700000000,
    ) -> ChatMessage:
        return ChatMessage(
            id=message_id,
            sender=sender,
            recipient=recipient,
            body=body if body is not None else f"hello {message_id}",
            sent_at=sent_at,
        )

    return _make


@pytest.fixture
def gate() -> SessionGate:
    return SessionGate()


@pytest.fixture
def queue() -> EventQueue:
    return EventQueue()


@pytest.fixture
def decoder(gate: SessionGate, queue: EventQueue) -> PushMessageDecoder:
    return PushMessageDecoder(gate, queue)


@pytest.fixture
def direct_target() -> ConversationTarget:
    return ConversationTarget(id="u-bob", kind=ConversationKind.DIRECT, display_name="bob")


@pytest.fixture
def group_target() -> ConversationTarget:
    return ConversationTarget(id="g-1", kind=ConversationKind.GROUP, display_name="Team")
