"""Tests for config module."""

import pytest

from es_appender.config import (
    BackendConfig,
    ConfigurationError,
    _parse_bool,
    load_config,
    load_yaml_config,
)

_ENV = ("ES_URL", "ES_INDEX", "ES_USERNAME", "ES_PASSWORD", "ES_VERIFY_CERTS",
        "ES_TIMEOUT", "ES_APPENDER_CONFIG")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _ENV:
        monkeypatch.delenv(var, raising=False)


class TestParseBool:
    def test_true_values(self):
        for val in ("true", "True", "1", "yes", True):
            assert _parse_bool(val) is True

    def test_false_values(self):
        for val in ("false", "0", "no", "", False):
            assert _parse_bool(val) is False


class TestBackendConfig:
    def test_defaults(self):
        cfg = BackendConfig()
        assert cfg.url == ""
        assert cfg.verify_certs is True
        assert cfg.timeout == 10.0
        assert cfg.verify_connection is True

    def test_frozen(self):
        cfg = BackendConfig()
        with pytest.raises(AttributeError):
            cfg.url = "http://x"

    def test_password_hidden_from_repr(self):
        cfg = BackendConfig(password="s3cret")
        assert "s3cret" not in repr(cfg)

    def test_validate_ok(self, valid_config):
        assert valid_config.validate() is valid_config

    def test_validate_lists_all_missing(self):
        with pytest.raises(ConfigurationError) as exc:
            BackendConfig(url="http://localhost:9200").validate()
        assert "index_name, username, password" in str(exc.value)

    def test_validate_rejects_bad_url(self):
        cfg = BackendConfig(url="localhost:9200", index_name="i", username="u", password="p")
        with pytest.raises(ConfigurationError, match="Invalid backend URL"):
            cfg.validate()

    def test_validate_rejects_bad_timeout(self):
        cfg = BackendConfig(
            url="http://h:9200", index_name="i", username="u", password="p", timeout=0
        )
        with pytest.raises(ConfigurationError):
            cfg.validate()

    def test_use_ssl(self):
        assert BackendConfig(url="https://h").use_ssl is True
        assert BackendConfig(url="http://h").use_ssl is False


class TestLoadYaml:
    def test_no_path(self):
        assert load_yaml_config(None) == {}

    def test_missing_file(self, tmp_path):
        assert load_yaml_config(str(tmp_path / "nope.yml")) == {}

    def test_elasticsearch_section(self, tmp_path):
        path = tmp_path / "appender.yml"
        path.write_text("elasticsearch:\n  url: http://es:9200\n  index_name: logs\n")
        assert load_yaml_config(str(path)) == {"url": "http://es:9200", "index_name": "logs"}

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("elasticsearch: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_yaml_config(str(path))


class TestLoadConfig:
    def test_empty(self):
        cfg = load_config([])
        assert cfg == BackendConfig()

    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("ES_URL", "http://env:9200")
        monkeypatch.setenv("ES_INDEX", "env-logs")
        monkeypatch.setenv("ES_USERNAME", "env-user")
        monkeypatch.setenv("ES_PASSWORD", "env-pass")
        monkeypatch.setenv("ES_VERIFY_CERTS", "false")
        monkeypatch.setenv("ES_TIMEOUT", "2.5")
        cfg = load_config([])
        assert cfg.url == "http://env:9200"
        assert cfg.index_name == "env-logs"
        assert cfg.username == "env-user"
        assert cfg.password == "env-pass"
        assert cfg.verify_certs is False
        assert cfg.timeout == 2.5

    def test_precedence_yaml_env_cli(self, monkeypatch, tmp_path):
        path = tmp_path / "appender.yml"
        path.write_text(
            "elasticsearch:\n"
            "  url: http://yaml:9200\n"
            "  index_name: yaml-logs\n"
            "  username: yaml-user\n"
        )
        monkeypatch.setenv("ES_APPENDER_CONFIG", str(path))
        monkeypatch.setenv("ES_INDEX", "env-logs")
        monkeypatch.setenv("ES_USERNAME", "env-user")

        cfg = load_config(["--username", "cli-user"])
        assert cfg.url == "http://yaml:9200"
        assert cfg.index_name == "env-logs"
        assert cfg.username == "cli-user"

    def test_cli_config_path(self, tmp_path):
        path = tmp_path / "appender.yml"
        path.write_text("url: http://flat:9200\ntimeout: 3\n")
        cfg = load_config(["--config", str(path)])
        assert cfg.url == "http://flat:9200"
        assert cfg.timeout == 3.0

    def test_no_verify_certs_flag(self):
        assert load_config(["--no-verify-certs"]).verify_certs is False

    def test_invalid_timeout(self, monkeypatch):
        monkeypatch.setenv("ES_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError):
            load_config([])
