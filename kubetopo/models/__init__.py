"""Core data structures for kubetopo."""

from kubetopo.models.config import KubeTopoConfig, LayoutConfig
from kubetopo.models.layout import (
    Application,
    ConfigBadge,
    LayoutEdge,
    LayoutNode,
    NodeShape,
)
from kubetopo.models.resources import (
    InvalidRecordError,
    OwnerReference,
    ResourceIdentity,
    ResourceRecord,
)

__all__ = [
    "Application",
    "ConfigBadge",
    "InvalidRecordError",
    "KubeTopoConfig",
    "LayoutConfig",
    "LayoutEdge",
    "LayoutNode",
    "NodeShape",
    "OwnerReference",
    "ResourceIdentity",
    "ResourceRecord",
]
