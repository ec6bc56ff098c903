"""Component grouper.

Turns the connectivity graph into named application groups:

1. connected components over the adjacency map, static pods excluded
2. visible members per component: ReplicaSets, pods nested under a
   controller and config objects are hidden (config objects surface as
   badges on their controller instead)
3. an anchor per component picked by kind priority, whose labels name it
4. components resolving to the same ``(namespace, name)`` merge into one group
5. every graph edge is bucketed, in one pass, into the component holding
   both of its endpoints

All tie-breaks are lexical so identical input always groups identically.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from kubetopo.graph.models import Edge, RelationshipGraph
from kubetopo.graph.references import CONFIG_KINDS
from kubetopo.models.resources import ResourceRecord

ANCHOR_PRIORITY: dict[str, int] = {
    "Deployment": 1,
    "StatefulSet": 2,
    "DaemonSet": 3,
    "CronJob": 4,
    "Job": 5,
    "Pod": 6,
}

# Instance/release labels first: they are usually the most specific.
NAME_LABELS = (
    "app.kubernetes.io/instance",
    "release",
    "app",
    "app.kubernetes.io/name",
    "k8s-app",
    "name",
    "app.kubernetes.io/component",
    "app.kubernetes.io/part-of",
)


@dataclass
class Component:
    """A maximal connected set of records, its visible subset and internal edges."""

    members: list[str]
    visible: list[str]
    anchor: str
    name: str
    namespace: str | None
    edges: list[Edge] = field(default_factory=list)


@dataclass
class ApplicationGroup:
    """One or more components sharing a ``(namespace, name)`` pair."""

    namespace: str | None
    name: str
    components: list[Component] = field(default_factory=list)

    @property
    def id(self) -> str:
        return f"app-{self.namespace or ''}/{self.name}"


def display_name(record: ResourceRecord) -> str:
    """Derive an application name from well-known labels, else the record name."""
    for label in NAME_LABELS:
        value = record.labels.get(label)
        if value:
            return value
    return record.name


def find_components(graph: RelationshipGraph) -> list[list[str]]:
    """Return connected components, largest first.

    Members keep record order; equal-sized components keep the order of
    their first member.
    """
    visited: set[str] = set()
    components: list[list[str]] = []
    order = {uid: i for i, uid in enumerate(graph.records)}

    for uid in graph.records:
        if uid in visited or uid in graph.static_pods:
            continue
        component: list[str] = []
        stack = [uid]
        visited.add(uid)
        while stack:
            current = stack.pop()
            component.append(current)
            for neighbor in graph.neighbors(current):
                if neighbor in visited or neighbor in graph.static_pods:
                    continue
                visited.add(neighbor)
                stack.append(neighbor)
        component.sort(key=order.__getitem__)
        components.append(component)

    components.sort(key=len, reverse=True)
    return components


def is_visible(graph: RelationshipGraph, uid: str) -> bool:
    """Whether a record is drawn as a top-level node."""
    record = graph.records[uid]
    if record.kind == "ReplicaSet" or record.kind in CONFIG_KINDS:
        return False
    if record.kind == "Pod" and uid in graph.pod_controller:
        return False
    return uid not in graph.static_pods


def select_anchor(records: list[ResourceRecord]) -> ResourceRecord:
    """Pick the naming anchor: highest kind priority, then lexical name.

    Components without any prioritised kind fall back to their lexically
    first record.
    """
    fallback = len(ANCHOR_PRIORITY) + 1
    return min(
        records,
        key=lambda r: (ANCHOR_PRIORITY.get(r.kind, fallback), r.name, r.namespace or "", r.uid),
    )


def group_components(graph: RelationshipGraph) -> list[ApplicationGroup]:
    """Derive named application groups from the graph."""
    groups: dict[tuple[str, str], ApplicationGroup] = {}
    component_of: dict[str, Component] = {}
    for members in find_components(graph):
        visible = [uid for uid in members if is_visible(graph, uid)]
        if not visible:
            continue
        anchor = select_anchor([graph.records[uid] for uid in visible])
        component = Component(
            members=members,
            visible=visible,
            anchor=anchor.uid,
            name=display_name(anchor),
            namespace=anchor.namespace,
        )
        for uid in members:
            component_of[uid] = component
        key = (component.namespace or "", component.name)
        group = groups.get(key)
        if group is None:
            group = groups[key] = ApplicationGroup(namespace=component.namespace, name=component.name)
        group.components.append(component)

    for edge in graph.edges:
        component = component_of.get(edge.source)
        if component is not None and component_of.get(edge.target) is component:
            component.edges.append(edge)

    for group in groups.values():
        group.components.sort(key=lambda c: _first_visible_name(graph, c))
    return list(groups.values())


def _first_visible_name(graph: RelationshipGraph, component: Component) -> tuple[str, str]:
    record = min((graph.records[uid] for uid in component.visible), key=lambda r: (r.name, r.uid))
    return (record.name, record.uid)
