"""
Unit tests for ServerConfig.
"""

import pytest

from relayhttp.config import ServerConfig


class TestServerConfig:
    """Tests for defaults, environment loading and validation."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.buffer_size == 2048
        assert config.workers == 4
        assert config.log_format == "text"
        config.validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("HTTP_HOST", "0.0.0.0")
        monkeypatch.setenv("HTTP_PORT", "3000")
        monkeypatch.setenv("HTTP_WORKERS", "8")
        monkeypatch.setenv("HTTP_TIMEOUT", "2.5")
        monkeypatch.setenv("HTTP_LOG_LEVEL", "debug")
        monkeypatch.setenv("HTTP_LOG_FORMAT", "JSON")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.workers == 8
        assert config.timeout == 2.5
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_from_env_unset_uses_defaults(self, monkeypatch):
        for name in ("HTTP_HOST", "HTTP_PORT", "HTTP_WORKERS",
                     "HTTP_TIMEOUT", "HTTP_LOG_LEVEL", "HTTP_LOG_FORMAT"):
            monkeypatch.delenv(name, raising=False)

        assert ServerConfig.from_env() == ServerConfig()

    def test_from_env_bad_number(self, monkeypatch):
        monkeypatch.setenv("HTTP_PORT", "eighty")

        with pytest.raises(ValueError):
            ServerConfig.from_env()

    @pytest.mark.parametrize("overrides", [
        {"port": 70000},
        {"port": -1},
        {"workers": 0},
        {"queue_size": 0},
        {"backlog": 0},
        {"buffer_size": 10},
        {"timeout": 0},
        {"log_level": "LOUD"},
        {"log_format": "xml"},
    ])
    def test_validate_rejects(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()
