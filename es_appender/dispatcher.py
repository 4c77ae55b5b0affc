"""Dispatcher and drain controller.

Events appended before activation go to the pending buffer. Activation
creates the backend handle, flips the readiness flag and drains the buffer
in order; afterwards events are shipped directly on the caller's thread.
"""

import logging
import threading
from enum import Enum

from es_appender.buffer import PendingBuffer
from es_appender.client import create_client
from es_appender.config import ActivationError, BackendConfig
from es_appender.mapper import map_event
from es_appender.metrics import Metrics
from es_appender.models import LogEvent
from es_appender.shipper import Shipper

logger = logging.getLogger(__name__)


class DispatchState(Enum):
    BUFFERING = "buffering"
    DRAINING = "draining"
    READY = "ready"
    CLOSED = "closed"


class Dispatcher:
    """Routes each event to the pending buffer or straight to the shipper.

    States:
    - BUFFERING: append enqueues. A successful activate moves to DRAINING;
      a failed one leaves the state unchanged and re-raises.
    - DRAINING: the backend handle exists and the readiness flag is set,
      but append still enqueues. The activating thread ships buffered
      events outside the routing lock and flips to READY in the same
      critical section that observes an empty buffer, so events racing
      the flip are caught by a later pass.
    - READY: append maps and ships directly; activate is a no-op.
    - CLOSED: append drops; the client has been released.

    If producers keep the buffer non-empty for ``max_drain_passes`` passes,
    the last batch is taken and READY is set together, then that batch is
    shipped. Only then can a direct ship overtake the tail of the buffer.
    """

    def __init__(
        self,
        client_factory=create_client,
        mapper=map_event,
        metrics: Metrics | None = None,
        max_drain_passes: int = 16,
    ):
        self._client_factory = client_factory
        self._mapper = mapper
        self._metrics = metrics or Metrics()
        self._max_drain_passes = max(1, max_drain_passes)

        self._buffer = PendingBuffer()
        self._state = DispatchState.BUFFERING
        self._ready = threading.Event()
        self._client = None
        self._shipper: Shipper | None = None

        # Guards _state, _client and _shipper. Never held during network I/O.
        self._route_lock = threading.Lock()
        self._activation_lock = threading.Lock()

    @property
    def state(self) -> DispatchState:
        with self._route_lock:
            return self._state

    @property
    def is_ready(self) -> bool:
        """Readiness flag: True once the backend handle exists. Never reverts."""
        return self._ready.is_set()

    @property
    def pending(self) -> int:
        return len(self._buffer)

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    def wait_until_ready(self, timeout: float | None = None) -> bool:
        return self._ready.wait(timeout=timeout)

    def append(self, event: LogEvent):
        """Buffer or ship one event. Never raises and never blocks on the lock for I/O."""
        try:
            with self._route_lock:
                state = self._state
                if state in (DispatchState.BUFFERING, DispatchState.DRAINING):
                    self._buffer.enqueue(event)
                    self._metrics.record_buffered()
                    return
                if state is DispatchState.CLOSED:
                    self._metrics.record_dropped()
                    return
                shipper = self._shipper

            self._ship_event(shipper, event)
        except Exception:
            logger.exception("Failed to append log event %s", event.summary())

    def activate(self, config: BackendConfig) -> bool:
        """Create the backend handle and drain the buffer.

        Returns True if this call activated, False if already ready.
        Configuration and connection errors propagate and leave the
        dispatcher buffering.
        """
        with self._activation_lock:
            with self._route_lock:
                state = self._state
            if state is DispatchState.READY:
                logger.debug("Activation requested but dispatcher is already ready")
                return False
            if state is DispatchState.CLOSED:
                raise ActivationError("Cannot activate a closed dispatcher")

            try:
                config.validate()
                client = self._client_factory(config)
            except Exception:
                logger.error(
                    "Activation failed, %d events remain buffered", len(self._buffer)
                )
                raise

            shipper = Shipper(client, self._metrics)
            with self._route_lock:
                if self._state is DispatchState.CLOSED:
                    closed_meanwhile = True
                else:
                    closed_meanwhile = False
                    self._client = client
                    self._shipper = shipper
                    self._state = DispatchState.DRAINING

            if closed_meanwhile:
                self._close_client(client)
                raise ActivationError("Dispatcher was closed during activation")

            self._ready.set()
            logger.info("Backend ready, draining %d buffered events", len(self._buffer))
            self._drain(shipper)
            return True

    def _drain(self, shipper: Shipper):
        shipped = 0
        for _ in range(self._max_drain_passes):
            with self._route_lock:
                if self._state is DispatchState.CLOSED:
                    return
                batch = self._buffer.drain_all()
                if not batch:
                    self._state = DispatchState.READY
                    logger.info("Drained %d buffered events, dispatcher ready", shipped)
                    return
            for event in batch:
                self._ship_event(shipper, event)
            shipped += len(batch)

        with self._route_lock:
            if self._state is DispatchState.CLOSED:
                return
            batch = self._buffer.drain_all()
            self._state = DispatchState.READY
        logger.warning(
            "Buffer still filling after %d drain passes; shipping last %d events "
            "after switching to direct dispatch",
            self._max_drain_passes, len(batch),
        )
        for event in batch:
            self._ship_event(shipper, event)

    def _ship_event(self, shipper: Shipper, event: LogEvent) -> bool:
        try:
            document = self._mapper(event)
        except Exception:
            self._metrics.record_failed()
            logger.exception("Failed to map log event %s", event.summary())
            return False
        return shipper.ship(document)

    def close(self):
        """Release the backend handle exactly once. Teardown errors are logged, not raised."""
        with self._route_lock:
            if self._state is DispatchState.CLOSED:
                return
            self._state = DispatchState.CLOSED
            client = self._client
            self._client = None
            self._shipper = None
            leftover = self._buffer.drain_all()

        if leftover:
            self._metrics.record_dropped(len(leftover))
            logger.warning("Closing with %d undelivered buffered events", len(leftover))

        if client is None:
            logger.debug("Dispatcher closed before activation, no client to release")
            return
        self._close_client(client)

    @staticmethod
    def _close_client(client):
        try:
            client.close()
        except Exception:
            logger.exception("Failed to close Elasticsearch client")
