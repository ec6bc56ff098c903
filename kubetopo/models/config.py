"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class LayoutConfig:
    """Geometry constants for the layout engine and canvas packer."""

    node_width: int = 160
    node_height: int = 60
    compact_node_size: int = 48
    pod_width: int = 120
    pod_height: int = 32
    pod_gap: int = 6
    controller_header: int = 32
    controller_padding: int = 8
    config_icon_size: int = 20
    config_icon_gap: int = 4
    config_icons_per_row: int = 5
    lane_gap: int = 32
    node_gap: int = 10
    app_padding: int = 12
    app_title_height: int = 36
    app_gap: int = 20
    max_row_width: int = 1800


@dataclass
class KubeConfig:
    """Cluster access configuration."""

    context: str = ""
    fetch_timeout_seconds: int = 20


@dataclass
class ServiceConfig:
    """Topology service configuration."""

    namespace: str = ""  # empty = all namespaces
    cache_ttl_seconds: int = 15


@dataclass
class APIConfig:
    """REST API configuration."""

    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "json"


@dataclass
class KubeTopoConfig:
    """Top-level kubetopo configuration."""

    kube: KubeConfig = field(default_factory=KubeConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
