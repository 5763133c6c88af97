"""Tests for the server config module."""

import pytest

from logserver.config import (
    ServerConfig,
    _parse_bool,
    load_config,
    load_yaml_config,
)
from logserver.errors import ConfigError

ENV_VARS = [
    "SERVER_HOST", "SERVER_PORT", "LOG_PATH", "MAX_LOG_BYTES", "BUFFER_SIZE",
    "PERSISTENT_CONNECTIONS", "READ_TIMEOUT", "DRAIN_TIMEOUT", "DASHBOARD_PORT",
    "LOG_LEVEL", "LOG_SERVER_CONFIG",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestParseBool:
    def test_true_values(self):
        for val in ("true", "True", "TRUE", "1", "yes", " yes ", True):
            assert _parse_bool(val) is True

    def test_false_values(self):
        for val in ("false", "0", "no", "", "random", False):
            assert _parse_bool(val) is False


class TestConfigDefaults:
    def test_defaults(self):
        cfg = ServerConfig()
        assert cfg.host == "127.0.0.1"
        assert cfg.port == 5000
        assert cfg.log_path == "CentralLog.txt"
        assert cfg.max_log_bytes == 10000
        assert cfg.buffer_size == 1024
        assert cfg.persistent_connections is True
        assert cfg.drain_timeout == 0.0
        assert cfg.dashboard_port == 0

    def test_frozen(self):
        cfg = ServerConfig()
        with pytest.raises(AttributeError):
            cfg.port = 8080

    def test_load_with_no_sources(self):
        assert load_config([]) == ServerConfig()


class TestLoadConfigEnv:
    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SERVER_HOST", "0.0.0.0")
        monkeypatch.setenv("SERVER_PORT", "6000")
        monkeypatch.setenv("MAX_LOG_BYTES", "0")
        monkeypatch.setenv("LOG_PATH", "/tmp/central.log")
        monkeypatch.setenv("PERSISTENT_CONNECTIONS", "false")
        monkeypatch.setenv("READ_TIMEOUT", "0.25")
        cfg = load_config([])
        assert cfg.host == "0.0.0.0"
        assert cfg.port == 6000
        assert cfg.max_log_bytes == 0
        assert cfg.log_path == "/tmp/central.log"
        assert cfg.persistent_connections is False
        assert cfg.read_timeout == 0.25

    def test_cli_beats_env(self, monkeypatch):
        monkeypatch.setenv("SERVER_PORT", "6000")
        cfg = load_config(["--port", "7000", "--single-shot"])
        assert cfg.port == 7000
        assert cfg.persistent_connections is False


class TestLoadConfigYaml:
    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("port: 5100\nmax_log_bytes: 2048\nlog_path: logs/a.log\n")
        cfg = load_config(["--config", str(path)])
        assert cfg.port == 5100
        assert cfg.max_log_bytes == 2048
        assert cfg.log_path == "logs/a.log"

    def test_yaml_from_env_var(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yml"
        path.write_text("buffer_size: 512\n")
        monkeypatch.setenv("LOG_SERVER_CONFIG", str(path))
        assert load_config([]).buffer_size == 512

    def test_env_beats_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yml"
        path.write_text("port: 5100\n")
        monkeypatch.setenv("SERVER_PORT", "5200")
        assert load_config(["--config", str(path)]).port == 5200

    def test_empty_yaml_is_defaults(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("")
        assert load_yaml_config(str(path)) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(["--config", str(tmp_path / "nope.yml")])

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("port: 5100\nmax_size: 10\n")
        with pytest.raises(ConfigError, match="max_size"):
            load_config(["--config", str(path)])

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("- port\n- host\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(["--config", str(path)])

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("port: [unclosed\n")
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_config(["--config", str(path)])


class TestValidation:
    def test_non_numeric_threshold(self):
        with pytest.raises(ConfigError, match="max_log_bytes"):
            load_config(["--max-log-bytes", "ten"])

    def test_negative_threshold(self):
        with pytest.raises(ConfigError, match="max_log_bytes"):
            load_config(["--max-log-bytes", "-1"])

    def test_invalid_host(self):
        with pytest.raises(ConfigError, match="host"):
            load_config(["--host", "not-an-ip"])

    def test_port_out_of_range(self):
        with pytest.raises(ConfigError, match="port"):
            load_config(["--port", "70000"])

    def test_non_numeric_port(self, monkeypatch):
        monkeypatch.setenv("SERVER_PORT", "abc")
        with pytest.raises(ConfigError, match="port"):
            load_config([])

    def test_zero_buffer_size(self):
        with pytest.raises(ConfigError, match="buffer_size"):
            load_config(["--buffer-size", "0"])

    def test_bad_log_level(self):
        with pytest.raises(ConfigError, match="log_level"):
            load_config(["--log-level", "LOUD"])

    def test_ipv6_host_accepted(self):
        assert load_config(["--host", "::1"]).host == "::1"
