"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from kubetopo.models.config import (
    APIConfig,
    KubeConfig,
    KubeTopoConfig,
    LayoutConfig,
    LogConfig,
    ServiceConfig,
)
from kubetopo.observability.logging import LOG_FORMATS


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBETOPO_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = _env(key, str(default))
    try:
        val = int(raw)
    except ValueError:
        raise ValueError(f"Invalid integer for KUBETOPO_{key}: {raw}") from None
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    if value.lower() not in LOG_FORMATS:
        raise ValueError(f"Invalid log format: {value}. Must be one of {LOG_FORMATS}")
    return value.lower()


def load_config() -> KubeTopoConfig:
    """Load configuration from KUBETOPO_* environment variables."""
    return KubeTopoConfig(
        kube=KubeConfig(
            context=_env("KUBE_CONTEXT", ""),
            fetch_timeout_seconds=_env_int("FETCH_TIMEOUT", 20, min_val=1, max_val=300),
        ),
        layout=LayoutConfig(
            max_row_width=_env_int("MAX_ROW_WIDTH", 1800, min_val=400, max_val=20000),
        ),
        service=ServiceConfig(
            namespace=_env("NAMESPACE", ""),
            cache_ttl_seconds=_env_int("CACHE_TTL", 15, min_val=0, max_val=3600),
        ),
        api=APIConfig(
            host=_env("API_HOST", "0.0.0.0"),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "json")),
        ),
    )
