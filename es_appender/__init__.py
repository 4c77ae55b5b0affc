"""Buffered Elasticsearch log appender."""

from es_appender.config import (
    ActivationError,
    AppenderError,
    BackendConfig,
    ConfigurationError,
)
from es_appender.dispatcher import Dispatcher, DispatchState
from es_appender.handler import ElasticsearchHandler, create_handler
from es_appender.lookup import EnvironmentLookup, poll_backend_config
from es_appender.models import ErrorInfo, Level, LogEvent

__all__ = [
    "ActivationError",
    "AppenderError",
    "BackendConfig",
    "ConfigurationError",
    "Dispatcher",
    "DispatchState",
    "ElasticsearchHandler",
    "EnvironmentLookup",
    "ErrorInfo",
    "Level",
    "LogEvent",
    "create_handler",
    "poll_backend_config",
]
