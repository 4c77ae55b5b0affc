"""Map a LogEvent to a flat document suitable for indexing."""

import datetime
import socket
import threading
from typing import Optional

from es_appender.models import LogEvent

UNKNOWN_HOST = "unknown-host"

_host_lock = threading.Lock()
_host_name: Optional[str] = None


def resolve_host_name() -> str:
    """Return this machine's host name, or the sentinel if it can't be resolved.

    Only a successful lookup is cached; after a failure the next call tries again.
    """
    global _host_name
    with _host_lock:
        if _host_name is not None:
            return _host_name
        try:
            name = socket.gethostname()
        except OSError:
            return UNKNOWN_HOST
        if not name:
            return UNKNOWN_HOST
        _host_name = name
        return name


def clear_host_cache():
    global _host_name
    with _host_lock:
        _host_name = None


def map_event(event: LogEvent, host: Optional[str] = None) -> dict:
    """Build the index document for one event.

    The ``error`` key is only present when the event carries an error.
    """
    if host is None:
        host = resolve_host_name()

    iso_ts = datetime.datetime.fromtimestamp(
        event.timestamp_ms / 1000, tz=datetime.timezone.utc
    ).isoformat()

    document = {
        "timestamp": event.timestamp_ms,
        "@timestamp": iso_ts,
        "host": host or UNKNOWN_HOST,
        "level": event.level.name,
        "loggerName": event.logger_name,
        "message": event.message,
        "threadName": event.thread_name,
    }

    if event.error is not None:
        document["error"] = {
            "type": event.error.type_name,
            "message": event.error.message,
            "stackTrace": event.error.stack_trace,
        }

    return document
