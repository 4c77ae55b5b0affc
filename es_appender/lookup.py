"""Environment lookup — resolves configuration values and ${...} placeholders.

Sources are consulted in order: explicit overrides, process environment,
then an optional YAML properties file.
"""

import logging
import os
import random
import re
import time

import yaml

from es_appender.config import REQUIRED_KEYS, BackendConfig, ConfigurationError

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$\{(?:env:)?([^}]+)\}")

# Property names used when polling for the backend configuration.
DEFAULT_KEYS = {
    "url": "es.url",
    "index_name": "es.index",
    "username": "es.username",
    "password": "es.password",
}


def _env_name(key: str) -> str:
    """es.index-name -> ES_INDEX_NAME"""
    return re.sub(r"[.\-]", "_", key).upper()


class EnvironmentLookup:
    def __init__(
        self,
        properties_file: str | None = None,
        overrides: dict | None = None,
        environ=None,
    ):
        self._overrides = dict(overrides or {})
        self._environ = os.environ if environ is None else environ
        self._properties_file = properties_file
        self._properties: dict = {}
        self.reload()

    def reload(self):
        """Re-read the properties file, if one was given."""
        if not self._properties_file:
            return
        try:
            with open(self._properties_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.debug("Properties file %s not found yet", self._properties_file)
            return
        except yaml.YAMLError as e:
            logger.warning("Invalid YAML in %s: %s", self._properties_file, e)
            return
        self._properties = data if isinstance(data, dict) else {}

    def _from_properties(self, key: str):
        if key in self._properties:
            node = self._properties[key]
        else:
            node = self._properties
            for part in key.split("."):
                if not isinstance(node, dict) or part not in node:
                    return None
                node = node[part]
        return None if isinstance(node, dict) else node

    def lookup(self, key: str, event=None) -> str | None:
        """Return the value for key, or None. The event is accepted and ignored."""
        if key in self._overrides:
            return str(self._overrides[key])
        for name in (key, _env_name(key)):
            value = self._environ.get(name)
            if value is not None:
                return value
        value = self._from_properties(key)
        return None if value is None else str(value)

    def resolve(self, text: str) -> str:
        """Substitute ${key} and ${env:key}; unknown placeholders are left as-is."""
        if not text:
            return text

        def _replace(match):
            value = self.lookup(match.group(1).strip())
            return match.group(0) if value is None else value

        return _PLACEHOLDER.sub(_replace, text)

    @staticmethod
    def unresolved(text: str) -> list[str]:
        """Keys of the placeholders still present in text."""
        if not text:
            return []
        return [match.group(1).strip() for match in _PLACEHOLDER.finditer(text)]


def _backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Exponential backoff with +/-20% jitter, capped at max_delay."""
    capped = min(base_delay * (2 ** attempt), max_delay)
    return capped * random.uniform(0.8, 1.2)


def poll_backend_config(
    lookup: EnvironmentLookup,
    keys: dict | None = None,
    max_retries: int = 5,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
    sleep=time.sleep,
) -> BackendConfig:
    """Poll the lookup until every required key resolves.

    Makes at most ``max_retries + 1`` attempts, then raises
    ConfigurationError naming the keys that never resolved.
    """
    keys = {**DEFAULT_KEYS, **(keys or {})}
    missing: list[str] = []

    for attempt in range(max_retries + 1):
        lookup.reload()
        values = {field: lookup.lookup(keys[field]) for field in REQUIRED_KEYS}
        missing = [keys[field] for field, value in values.items() if not value]
        if not missing:
            return BackendConfig(**values).validate()

        if attempt < max_retries:
            delay = _backoff_delay(attempt, base_delay, max_delay)
            logger.info(
                "Configuration not available yet (missing %s), retrying in %.1fs "
                "(attempt %d/%d)",
                ", ".join(missing), delay, attempt + 1, max_retries + 1,
            )
            sleep(delay)

    raise ConfigurationError(
        f"Configuration unresolved after {max_retries + 1} attempts: {', '.join(missing)}"
    )
