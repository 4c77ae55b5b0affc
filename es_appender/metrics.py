"""Thread-safe delivery counters for the appender."""

import threading


class Metrics:
    """Counters for buffered, sent, failed and dropped events.

    Latency is kept as a running count, total and maximum, so memory use
    does not grow with the number of events sent.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._buffered = 0
        self._sent = 0
        self._failed = 0
        self._dropped = 0
        self._latency_total_ms = 0.0
        self._latency_max_ms = 0.0

    def record_buffered(self):
        with self._lock:
            self._buffered += 1

    def record_sent(self, latency_ms: float):
        """Record a successful index call with its latency in milliseconds."""
        with self._lock:
            self._sent += 1
            self._latency_total_ms += latency_ms
            if latency_ms > self._latency_max_ms:
                self._latency_max_ms = latency_ms

    def record_failed(self):
        with self._lock:
            self._failed += 1

    def record_dropped(self, count: int = 1):
        with self._lock:
            self._dropped += count

    def _snapshot_locked(self) -> dict:
        sent = self._sent
        return {
            "buffered": self._buffered,
            "sent": sent,
            "failed": self._failed,
            "dropped": self._dropped,
            "avg_latency_ms": self._latency_total_ms / sent if sent else 0.0,
            "max_latency_ms": self._latency_max_ms,
        }

    def snapshot(self) -> dict:
        with self._lock:
            return self._snapshot_locked()

    def snapshot_and_reset(self) -> dict:
        """Atomically read all counters and reset them to zero."""
        with self._lock:
            snapshot = self._snapshot_locked()
            self._buffered = 0
            self._sent = 0
            self._failed = 0
            self._dropped = 0
            self._latency_total_ms = 0.0
            self._latency_max_ms = 0.0
            return snapshot
