"""Cross-thread FIFO between the push connection and the consumer."""

from __future__ import annotations

import threading
from collections import deque

from messenger_sync.models.events import InboundEvent


class EventQueue:
    """FIFO of inbound events shared by one producer and one consumer thread.

    The consumer calls ``drain_pending`` once per tick. A drain takes every
    event present at that instant in a single locked swap; events put while
    the consumer is processing the batch land in the fresh deque and are
    returned by the next drain.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: deque[InboundEvent] = deque()

    def put(self, event: InboundEvent) -> None:
        with self._lock:
            self._events.append(event)

    def drain_pending(self) -> list[InboundEvent]:
        """Remove and return all queued events in enqueue order."""
        with self._lock:
            if not self._events:
                return []
            batch, self._events = self._events, deque()
        return list(batch)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
