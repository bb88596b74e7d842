"""In-process event bus between producers and the processing pipeline.

Bounded FIFO, many writers / one reader.  ``publish`` never blocks: when the
buffer is full the oldest pending event is dropped to make room.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Iterator

from src.contracts import AlertEvent

log = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000


class EventBus:
    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._queue: deque[AlertEvent] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self.dropped = 0

    def publish(self, event: AlertEvent) -> bool:
        """Enqueue *event*; returns False if the bus is already closed."""
        with self._cond:
            if self._closed:
                return False
            if len(self._queue) >= self.capacity:
                oldest = self._queue.popleft()
                self.dropped += 1
                log.warning("Event bus full (%d) — dropped oldest %s", self.capacity, oldest.event_type)
            self._queue.append(event)
            self._cond.notify()
            return True

    def consume(
        self,
        stop_event: threading.Event,
        poll_interval: float = 0.5,
    ) -> Iterator[AlertEvent]:
        """Yield events in FIFO order until *stop_event* is set or the bus is closed and drained."""
        while not stop_event.is_set():
            with self._cond:
                if not self._queue:
                    if self._closed:
                        return
                    self._cond.wait(poll_interval)
                    continue
                event = self._queue.popleft()
            yield event
        with self._cond:
            pending = len(self._queue)
        if pending:
            log.warning("Event bus stopped with %d unprocessed events", pending)

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)
