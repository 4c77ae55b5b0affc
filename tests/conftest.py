"""Shared fixtures: an in-memory backend client and a counting factory."""

import threading

import pytest

from es_appender.config import BackendConfig
from es_appender.models import Level, LogEvent


class FakeClient:
    """Records indexed documents; can fail or block on chosen messages."""

    def __init__(self, index_name: str = "app-logs"):
        self.index_name = index_name
        self.documents: list[dict] = []
        self.fail_messages: set[str] = set()
        self.gate: threading.Event | None = None
        self.entered = threading.Event()
        self.close_calls = 0
        self.close_error: Exception | None = None
        self._lock = threading.Lock()

    @property
    def messages(self) -> list[str]:
        with self._lock:
            return [d["message"] for d in self.documents]

    def index(self, document: dict) -> dict:
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if document["message"] in self.fail_messages:
            raise ConnectionError(f"index rejected {document['message']}")
        with self._lock:
            self.documents.append(document)
        return {"result": "created"}

    def close(self):
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error


class FakeClientFactory:
    def __init__(self, client: FakeClient):
        self.client = client
        self.calls: list[BackendConfig] = []
        self.error: Exception | None = None

    def __call__(self, config: BackendConfig) -> FakeClient:
        self.calls.append(config)
        if self.error is not None:
            raise self.error
        return self.client


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def client_factory(fake_client) -> FakeClientFactory:
    return FakeClientFactory(fake_client)


@pytest.fixture
def valid_config() -> BackendConfig:
    return BackendConfig(
        url="http://localhost:9200",
        index_name="app-logs",
        username="elastic",
        password="changeme",
    )


def make_event(message: str, level: Level = Level.INFO, error=None) -> LogEvent:
    return LogEvent(
        timestamp_ms=1700000000000,
        level=level,
        logger_name="app.test",
        message=message,
        thread_name="MainThread",
        error=error,
    )
