"""Data structures for the resource relationship graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from kubetopo.models.resources import ResourceRecord


class EdgeKind(StrEnum):
    """Types of inferred relationships between resources."""

    OWNER = "owner"
    SELECTOR = "selector"
    SERVICE = "service"
    INGRESS = "ingress"
    GATEWAY = "gateway"
    NETWORK_POLICY = "network-policy"


@dataclass(frozen=True)
class Edge:
    """A typed, directed edge between two records (by uid)."""

    source: str
    target: str
    kind: EdgeKind


@dataclass
class ConfigRef:
    """A config object referenced by the pods of one controller."""

    kind: str
    name: str
    namespace: str | None
    uid: str | None
    shared: bool


@dataclass
class RelationshipGraph:
    """Connectivity graph for one snapshot.

    Built once per pass and treated as read-only by grouping and layout.
    Parent/child relationships are plain uid index maps.
    """

    records: dict[str, ResourceRecord] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)
    adjacency: dict[str, set[str]] = field(default_factory=dict)
    parent_of: dict[str, str] = field(default_factory=dict)
    children_of: dict[str, list[str]] = field(default_factory=dict)
    pod_controller: dict[str, str] = field(default_factory=dict)
    controller_pods: dict[str, list[str]] = field(default_factory=dict)
    controller_configs: dict[str, list[ConfigRef]] = field(default_factory=dict)
    static_pods: set[str] = field(default_factory=set)
    shared: set[str] = field(default_factory=set)
    _edge_keys: set[Edge] = field(default_factory=set, repr=False)

    @property
    def node_count(self) -> int:
        return len(self.records)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def connect(self, uid_a: str, uid_b: str) -> None:
        """Record undirected connectivity between two uids."""
        if uid_a == uid_b:
            return
        self.adjacency.setdefault(uid_a, set()).add(uid_b)
        self.adjacency.setdefault(uid_b, set()).add(uid_a)

    def add_edge(self, source: str, target: str, kind: EdgeKind, connect: bool = True) -> None:
        """Add a directed edge, ignoring exact duplicates."""
        edge = Edge(source=source, target=target, kind=kind)
        if edge not in self._edge_keys:
            self._edge_keys.add(edge)
            self.edges.append(edge)
        if connect:
            self.connect(source, target)

    def neighbors(self, uid: str) -> set[str]:
        return self.adjacency.get(uid, set())

    def root_owner(self, uid: str) -> str:
        """Walk ``parent_of`` up to the topmost owner.

        A cyclic owner chain resolves to the lexically smallest uid of the
        cycle so that every member agrees on the same root.
        """
        path: list[str] = [uid]
        seen = {uid}
        current = uid
        while current in self.parent_of:
            parent = self.parent_of[current]
            if parent in seen:
                return min(path[path.index(parent):])
            path.append(parent)
            seen.add(parent)
            current = parent
        return current

    def records_of_kind(self, *kinds: str) -> list[ResourceRecord]:
        return [r for r in self.records.values() if r.kind in kinds]
