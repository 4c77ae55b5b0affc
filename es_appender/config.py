"""Backend configuration — frozen dataclass loaded from YAML, env vars and CLI args."""

import argparse
import logging
import os
from dataclasses import dataclass, field, fields
from urllib.parse import urlparse

import yaml

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("url", "index_name", "username", "password")


class AppenderError(Exception):
    """Base class for errors raised by the appender."""


class ConfigurationError(AppenderError):
    """Missing or invalid backend configuration. Fatal to activation."""


class ActivationError(AppenderError):
    """The backend handle could not be created (e.g. connection refused)."""


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class BackendConfig:
    url: str = ""
    index_name: str = ""
    username: str = ""
    password: str = field(default="", repr=False)
    verify_certs: bool = True
    timeout: float = 10.0
    verify_connection: bool = True

    def missing_keys(self) -> list[str]:
        return [key for key in REQUIRED_KEYS if not getattr(self, key)]

    def validate(self) -> "BackendConfig":
        """Raise ConfigurationError unless every required key is usable."""
        missing = self.missing_keys()
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}"
            )

        parsed = urlparse(self.url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ConfigurationError(f"Invalid backend URL: {self.url!r}")

        if self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {self.timeout}")
        return self

    @property
    def use_ssl(self) -> bool:
        return urlparse(self.url).scheme == "https"


_ENV_VARS = {
    "url": "ES_URL",
    "index_name": "ES_INDEX",
    "username": "ES_USERNAME",
    "password": "ES_PASSWORD",
    "verify_certs": "ES_VERIFY_CERTS",
    "timeout": "ES_TIMEOUT",
}


def load_yaml_config(path: str | None) -> dict:
    """Load the ``elasticsearch`` section of a YAML file. Empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    logger.info("Loaded YAML config from %s", path)
    section = data.get("elasticsearch", data) if isinstance(data, dict) else {}
    return section if isinstance(section, dict) else {}


def _coerce(values: dict) -> dict:
    """Keep known keys and convert them to their field types."""
    known = {f.name for f in fields(BackendConfig)}
    result = {}
    for key, value in values.items():
        if key not in known or value is None:
            continue
        if key in ("verify_certs", "verify_connection"):
            result[key] = _parse_bool(value)
        elif key == "timeout":
            try:
                result[key] = float(value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid timeout: {value!r}") from e
        else:
            result[key] = str(value)
    return result


def load_config(argv: list[str] | None = None) -> BackendConfig:
    """Build BackendConfig from defaults <- YAML <- env vars <- CLI args.

    The result is not validated; activation does that so a missing key is
    reported at the point it becomes fatal.
    """
    parser = argparse.ArgumentParser(description="Elasticsearch log appender")
    parser.add_argument("--config", type=str, default=None)
    parser.add_argument("--url", type=str, default=None)
    parser.add_argument("--index-name", type=str, default=None)
    parser.add_argument("--username", type=str, default=None)
    parser.add_argument("--password", type=str, default=None)
    parser.add_argument("--timeout", type=float, default=None)
    parser.add_argument("--no-verify-certs", action="store_true", default=False)
    args, _ = parser.parse_known_args(argv)

    kwargs = _coerce(load_yaml_config(args.config or os.environ.get("ES_APPENDER_CONFIG")))

    env_values = {
        key: os.environ[var] for key, var in _ENV_VARS.items() if var in os.environ
    }
    kwargs.update(_coerce(env_values))

    cli_values = {
        "url": args.url,
        "index_name": args.index_name,
        "username": args.username,
        "password": args.password,
        "timeout": args.timeout,
    }
    if args.no_verify_certs:
        cli_values["verify_certs"] = False
    kwargs.update(_coerce(cli_values))

    return BackendConfig(**kwargs)
