"""logging.Handler that forwards records to the dispatcher."""

import logging

from es_appender.config import BackendConfig, ConfigurationError
from es_appender.dispatcher import Dispatcher
from es_appender.lookup import EnvironmentLookup
from es_appender.models import LogEvent

# Records from these loggers would loop back into the index.
_INTERNAL_LOGGERS = ("es_appender", "opensearch", "urllib3", "requests")


def _is_internal(name: str) -> bool:
    return any(name == prefix or name.startswith(prefix + ".") for prefix in _INTERNAL_LOGGERS)


class ElasticsearchHandler(logging.Handler):
    """Captures log records and hands them to a Dispatcher.

    Usable directly or through ``logging.config.dictConfig``. When all four
    connection settings are given the handler activates immediately;
    ``${env:NAME}`` style placeholders in them are resolved first.
    Otherwise records are buffered until ``activate`` is called.
    """

    def __init__(
        self,
        dispatcher: Dispatcher | None = None,
        url: str | None = None,
        index_name: str | None = None,
        username: str | None = None,
        password: str | None = None,
        verify_certs: bool = True,
        timeout: float = 10.0,
        verify_connection: bool = True,
        lookup: EnvironmentLookup | None = None,
        level=logging.NOTSET,
    ):
        super().__init__(level)
        self._dispatcher = dispatcher or Dispatcher()
        self._lookup = lookup or EnvironmentLookup()

        settings = (url, index_name, username, password)
        if any(value is not None for value in settings):
            url, index_name, username, password = self._resolve_settings(
                url=url, index_name=index_name, username=username, password=password
            )
            self.activate(
                BackendConfig(
                    url=url,
                    index_name=index_name,
                    username=username,
                    password=password,
                    verify_certs=verify_certs,
                    timeout=timeout,
                    verify_connection=verify_connection,
                )
            )

    def _resolve_settings(self, **settings) -> list[str]:
        """Resolve placeholders; any left unresolved is a configuration error."""
        resolved = []
        unresolved = []
        for name, value in settings.items():
            text = self._lookup.resolve(value or "")
            left = self._lookup.unresolved(text)
            if left:
                unresolved.append(f"{name} ({', '.join(left)})")
            resolved.append(text)
        if unresolved:
            raise ConfigurationError(f"Unresolved placeholders in {'; '.join(unresolved)}")
        return resolved

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    def activate(self, config: BackendConfig) -> bool:
        return self._dispatcher.activate(config)

    def handle(self, record):
        # The dispatcher is thread-safe; skipping the handler lock keeps
        # producers from queueing behind each other's network calls.
        rv = self.filter(record)
        if isinstance(rv, logging.LogRecord):
            record = rv
        if rv:
            self.emit(record)
        return rv

    def emit(self, record: logging.LogRecord):
        if _is_internal(record.name):
            return
        try:
            self._dispatcher.append(LogEvent.from_record(record))
        except Exception:
            self.handleError(record)

    def close(self):
        try:
            self._dispatcher.close()
        finally:
            super().close()


def create_handler(
    name: str,
    url: str,
    index_name: str,
    username: str,
    password: str,
    level=logging.NOTSET,
    **kwargs,
) -> ElasticsearchHandler:
    """Build a named, activated handler from connection settings."""
    handler = ElasticsearchHandler(
        url=url,
        index_name=index_name,
        username=username,
        password=password,
        level=level,
        **kwargs,
    )
    handler.set_name(name)
    return handler
