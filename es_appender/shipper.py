"""Shipper — one index call per document, failures isolated per event."""

import logging
import time

from es_appender.metrics import Metrics

logger = logging.getLogger(__name__)


class Shipper:
    """Sends documents to the backend, fire-and-forget.

    A failed call is logged and counted; it never propagates, is never
    retried and the document is not re-queued.
    """

    def __init__(self, client, metrics: Metrics | None = None):
        self._client = client
        self._metrics = metrics or Metrics()

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    def ship(self, document: dict) -> bool:
        """Index one document. Returns True on success, False on any failure."""
        t0 = time.monotonic()
        try:
            self._client.index(document)
        except Exception as e:
            self._metrics.record_failed()
            logger.error(
                "Failed to send log to index %s: [%s] %s: %s — %s: %s",
                getattr(self._client, "index_name", "?"),
                document.get("level"),
                document.get("loggerName"),
                str(document.get("message", ""))[:200],
                type(e).__name__,
                e,
            )
            return False

        self._metrics.record_sent((time.monotonic() - t0) * 1000)
        return True
