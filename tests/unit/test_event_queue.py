"""Tests for the cross-thread event queue."""

import threading

from messenger_sync.core.event_queue import EventQueue
from messenger_sync.models.events import BanNotice, NewMessage
from messenger_sync.models.message import ChatMessage


def _event(n: int) -> NewMessage:
    return NewMessage(
        ChatMessage(id=str(n), sender="bob", recipient="alice", body="x", sent_at=n)
    )


class TestEventQueue:
    """Test FIFO drain semantics."""

    def test_drain_empty(self) -> None:
        """Test draining an empty queue."""
        assert EventQueue().drain_pending() == []

    def test_drain_preserves_order(self) -> None:
        """Test that events come out in enqueue order."""
        queue = EventQueue()
        events = [_event(1), BanNotice("spam"), _event(2)]
        for event in events:
            queue.put(event)

        assert queue.drain_pending() == events
        assert len(queue) == 0

    def test_events_after_drain_go_to_next_drain(self) -> None:
        """Test that a drain only takes what was present at that instant."""
        queue = EventQueue()
        queue.put(_event(1))
        first = queue.drain_pending()
        queue.put(_event(2))

        assert first == [_event(1)]
        assert queue.drain_pending() == [_event(2)]

    def test_concurrent_producer(self) -> None:
        """Test that nothing is lost, duplicated or reordered across threads."""
        queue = EventQueue()
        total = 2000
        done = threading.Event()

        def produce() -> None:
            for n in range(total):
                queue.put(_event(n))
            done.set()

        producer = threading.Thread(target=produce)
        producer.start()

        received: list[NewMessage] = []
        while not done.is_set() or len(queue):
            received.extend(queue.drain_pending())  # type: ignore[arg-type]

        producer.join()
        received.extend(queue.drain_pending())  # type: ignore[arg-type]

        assert [event.message.sent_at for event in received] == list(range(total))
