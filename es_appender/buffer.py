"""PendingBuffer — unbounded FIFO of events captured before the backend is ready."""

import threading
from collections import deque

from es_appender.models import LogEvent


class PendingBuffer:
    """Thread-safe, unbounded, insertion-ordered queue.

    Producers are never blocked by capacity; contents are lost if the
    process dies before a drain.
    """

    def __init__(self):
        self._items: deque[LogEvent] = deque()
        self._lock = threading.Lock()

    def enqueue(self, event: LogEvent):
        with self._lock:
            self._items.append(event)

    def drain_all(self) -> list[LogEvent]:
        """Atomically remove and return every queued event in FIFO order."""
        with self._lock:
            items = list(self._items)
            self._items.clear()
        return items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
