"""Layout output structures handed to the renderer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from kubetopo.models.resources import ResourceIdentity, ResourceRecord

if TYPE_CHECKING:
    from kubetopo.graph.models import EdgeKind


class NodeShape(StrEnum):
    """Visual treatment of a node, decided once during sizing."""

    STANDARD = "standard"
    COMPACT = "compact"
    CONTROLLER = "controller"
    INGRESS = "ingress"
    NETWORK_POLICY = "network-policy"


@dataclass
class ConfigBadge:
    """A ConfigMap/Secret/PVC icon attached to a controller node.

    Coordinates are relative to the hosting node.
    """

    kind: str
    name: str
    namespace: str | None
    uid: str | None = None  # None when the object is absent from the snapshot
    shared: bool = False
    x: float = 0.0
    y: float = 0.0
    size: float = 0.0


@dataclass
class LayoutNode:
    """A positioned resource.

    Top-level nodes carry absolute canvas coordinates once packed; nested
    pods and badges are relative to their host.
    """

    uid: str
    resource: ResourceRecord
    shape: NodeShape
    x: float
    y: float
    width: float
    height: float
    children: list[LayoutNode] = field(default_factory=list)
    badges: list[ConfigBadge] = field(default_factory=list)

    @property
    def identity(self) -> ResourceIdentity:
        return self.resource.identity

    def translate(self, dx: float, dy: float) -> None:
        self.x += dx
        self.y += dy


@dataclass(frozen=True)
class LayoutEdge:
    """An edge between two nodes visible in the same Application."""

    source: str
    target: str
    kind: EdgeKind


@dataclass
class Application:
    """A named group of related resources with its bounding box."""

    id: str
    name: str
    namespace: str | None
    nodes: list[LayoutNode] = field(default_factory=list)
    edges: list[LayoutEdge] = field(default_factory=list)
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def translate(self, dx: float, dy: float) -> None:
        """Move the application and all of its top-level nodes."""
        self.x += dx
        self.y += dy
        for node in self.nodes:
            node.translate(dx, dy)

    def find_node(self, uid: str) -> LayoutNode | None:
        """Return the top-level or nested node with *uid*, if present."""
        for node in self.nodes:
            if node.uid == uid:
                return node
            for child in node.children:
                if child.uid == uid:
                    return child
        return None
