"""Tests for KUBETOPO_* environment configuration."""

from __future__ import annotations

import pytest

from kubetopo.config import load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    import os

    for key in list(os.environ):
        if key.startswith("KUBETOPO_"):
            monkeypatch.delenv(key)


class TestDefaults:
    def test_defaults(self) -> None:
        config = load_config()
        assert config.api.port == 8080
        assert config.api.host == "0.0.0.0"
        assert config.log.level == "info"
        assert config.log.format == "json"
        assert config.service.namespace == ""
        assert config.service.cache_ttl_seconds == 15
        assert config.kube.fetch_timeout_seconds == 20
        assert config.layout.max_row_width == 1800


class TestOverrides:
    def test_values_read_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBETOPO_API_PORT", "9090")
        monkeypatch.setenv("KUBETOPO_NAMESPACE", "shop")
        monkeypatch.setenv("KUBETOPO_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("KUBETOPO_LOG_FORMAT", "console")
        monkeypatch.setenv("KUBETOPO_KUBE_CONTEXT", "kind-dev")
        config = load_config()
        assert config.api.port == 9090
        assert config.service.namespace == "shop"
        assert config.log.level == "debug"
        assert config.log.format == "console"
        assert config.kube.context == "kind-dev"

    @pytest.mark.parametrize(
        ("key", "raw", "attr", "expected"),
        [
            ("API_PORT", "80", ("api", "port"), 1024),
            ("API_PORT", "70000", ("api", "port"), 65535),
            ("CACHE_TTL", "-5", ("service", "cache_ttl_seconds"), 0),
            ("CACHE_TTL", "99999", ("service", "cache_ttl_seconds"), 3600),
            ("MAX_ROW_WIDTH", "10", ("layout", "max_row_width"), 400),
            ("MAX_ROW_WIDTH", "50000", ("layout", "max_row_width"), 20000),
        ],
    )
    def test_integers_clamped(self, monkeypatch: pytest.MonkeyPatch, key, raw, attr, expected) -> None:
        monkeypatch.setenv(f"KUBETOPO_{key}", raw)
        section, field = attr
        assert getattr(getattr(load_config(), section), field) == expected


class TestValidation:
    def test_invalid_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBETOPO_LOG_LEVEL", "verbose")
        with pytest.raises(ValueError, match="Invalid log level"):
            load_config()

    def test_invalid_log_format(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBETOPO_LOG_FORMAT", "xml")
        with pytest.raises(ValueError, match="Invalid log format"):
            load_config()

    def test_non_integer(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBETOPO_API_PORT", "eighty")
        with pytest.raises(ValueError, match="KUBETOPO_API_PORT"):
            load_config()
