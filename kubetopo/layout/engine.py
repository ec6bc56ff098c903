"""
Layout Engine

Computes node positions and sizes inside one application group.

Nodes are bucketed into lanes that approximate left-to-right request flow:

    0  Ingress / Gateway      (traffic entry points)
    1  HTTPRoute / GRPCRoute  (routing)
    2  Service                (load balancing)
    3  Controllers and pods   (compute)
    4  ConfigMap / Secret / PVC
    5  NetworkPolicy

Each lane is a column as wide as its widest node; nodes stack vertically
inside a lane and are centred within the column. Node coordinates are
relative to the application origin until the canvas packer places it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from kubetopo.graph.grouping import ApplicationGroup, Component
from kubetopo.graph.models import RelationshipGraph
from kubetopo.models.config import LayoutConfig
from kubetopo.models.layout import Application, ConfigBadge, LayoutEdge, LayoutNode, NodeShape
from kubetopo.models.resources import ResourceRecord

CONTROLLER_LANE = 3

KIND_LANES: dict[str, int] = {
    "Gateway": 0,
    "Ingress": 0,
    "HTTPRoute": 1,
    "GRPCRoute": 1,
    "Service": 2,
    "Deployment": 3,
    "StatefulSet": 3,
    "DaemonSet": 3,
    "Job": 3,
    "CronJob": 3,
    "Pod": 3,
    "ConfigMap": 4,
    "Secret": 4,
    "PersistentVolumeClaim": 4,
    "NetworkPolicy": 5,
}

COMPACT_KINDS = frozenset({"Service", "Gateway", "HTTPRoute", "GRPCRoute"})


@dataclass
class ComponentLayout:
    """Positioned nodes and edges of one component, origin at (0, 0)."""

    nodes: list[LayoutNode] = field(default_factory=list)
    edges: list[LayoutEdge] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0


class LayoutEngine:
    """Computes positions for the nodes of application groups."""

    def __init__(self, config: LayoutConfig | None = None) -> None:
        self.config = config or LayoutConfig()

    def layout_group(self, graph: RelationshipGraph, group: ApplicationGroup) -> Application:
        """Lay out every component of *group* side by side under one title."""
        app = Application(id=group.id, name=group.name, namespace=group.namespace)
        offset_x = 0.0
        for component in group.components:
            sub = self.layout_component(graph, component)
            for node in sub.nodes:
                node.translate(offset_x, 0)
            app.nodes.extend(sub.nodes)
            app.edges.extend(sub.edges)
            app.height = max(app.height, sub.height)
            offset_x += sub.width + self.config.app_gap
        app.width = max(0.0, offset_x - self.config.app_gap)
        return app

    def layout_component(self, graph: RelationshipGraph, component: Component) -> ComponentLayout:
        """Assign lanes, sizes and positions to the visible nodes of a component."""
        cfg = self.config
        records = [graph.records[uid] for uid in component.visible]

        lanes: dict[int, list[ResourceRecord]] = {}
        for record in records:
            lanes.setdefault(KIND_LANES.get(record.kind, CONTROLLER_LANE), []).append(record)
        for lane_records in lanes.values():
            lane_records.sort(key=lambda r: (r.name, r.uid))

        sized = {r.uid: self._size_node(graph, r) for r in records}

        layout = ComponentLayout()
        current_x = float(cfg.app_padding)
        max_x = 0.0
        max_y = float(cfg.app_padding + cfg.app_title_height)

        for lane in sorted(lanes):
            lane_width = max(sized[r.uid].width for r in lanes[lane])
            y = float(cfg.app_padding + cfg.app_title_height)
            for record in lanes[lane]:
                node = sized[record.uid]
                node.x = current_x + (lane_width - node.width) / 2
                node.y = y
                layout.nodes.append(node)
                max_y = max(max_y, y + node.height)
                y += node.height + cfg.node_gap
            max_x = max(max_x, current_x + lane_width)
            current_x += lane_width + cfg.lane_gap

        layout.width = max_x + cfg.app_padding
        layout.height = max_y + cfg.app_padding
        layout.edges = self._project_edges(graph, component)
        return layout

    # ------------------------------------------------------------------
    # Sizing
    # ------------------------------------------------------------------

    def _size_node(self, graph: RelationshipGraph, record: ResourceRecord) -> LayoutNode:
        """Decide the node's shape and footprint once."""
        cfg = self.config
        if record.kind in COMPACT_KINDS:
            return self._node(record, NodeShape.COMPACT, cfg.compact_node_size, cfg.compact_node_size)

        pods = graph.controller_pods.get(record.uid)
        if pods:
            return self._controller_node(graph, record, pods)

        if record.kind == "Ingress":
            shape = NodeShape.INGRESS
        elif record.kind == "NetworkPolicy":
            shape = NodeShape.NETWORK_POLICY
        else:
            shape = NodeShape.STANDARD
        return self._node(record, shape, cfg.node_width, cfg.node_height)

    def _controller_node(self, graph: RelationshipGraph, record: ResourceRecord, pods: list[str]) -> LayoutNode:
        """Size a controller around its stacked pods and wrapped config icons."""
        cfg = self.config
        configs = graph.controller_configs.get(record.uid, [])
        per_row = max(1, cfg.config_icons_per_row)

        icons_in_row = min(len(configs), per_row)
        icons_width = 0
        if icons_in_row:
            icons_width = icons_in_row * (cfg.config_icon_size + cfg.config_icon_gap) - cfg.config_icon_gap
            icons_width += cfg.controller_padding * 2
        width = max(cfg.pod_width + cfg.controller_padding * 2, icons_width)

        icon_rows = math.ceil(len(configs) / per_row)
        icons_height = icon_rows * (cfg.config_icon_size + cfg.config_icon_gap) + cfg.config_icon_gap if icon_rows else 0
        pods_bottom = cfg.controller_header + len(pods) * (cfg.pod_height + cfg.pod_gap) - cfg.pod_gap
        height = pods_bottom + cfg.controller_padding + icons_height

        node = self._node(record, NodeShape.CONTROLLER, width, height)
        for i, pod_uid in enumerate(pods):
            node.children.append(
                LayoutNode(
                    uid=pod_uid,
                    resource=graph.records[pod_uid],
                    shape=NodeShape.STANDARD,
                    x=cfg.controller_padding,
                    y=cfg.controller_header + i * (cfg.pod_height + cfg.pod_gap),
                    width=cfg.pod_width,
                    height=cfg.pod_height,
                )
            )
        for i, ref in enumerate(configs):
            row, col = divmod(i, per_row)
            node.badges.append(
                ConfigBadge(
                    kind=ref.kind,
                    name=ref.name,
                    namespace=ref.namespace,
                    uid=ref.uid,
                    shared=ref.shared,
                    x=cfg.controller_padding + col * (cfg.config_icon_size + cfg.config_icon_gap),
                    y=pods_bottom + cfg.config_icon_gap + row * (cfg.config_icon_size + cfg.config_icon_gap),
                    size=cfg.config_icon_size,
                )
            )
        return node

    @staticmethod
    def _node(record: ResourceRecord, shape: NodeShape, width: float, height: float) -> LayoutNode:
        return LayoutNode(uid=record.uid, resource=record, shape=shape, x=0, y=0, width=width, height=height)

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def _project_edges(self, graph: RelationshipGraph, component: Component) -> list[LayoutEdge]:
        """Restrict the component's edges to its visible nodes.

        Nested pods stand in for their controller; edges that collapse onto
        a single node or leave the visible set are dropped.
        """
        visible = set(component.visible)

        def host(uid: str) -> str | None:
            if uid in visible:
                return uid
            controller = graph.pod_controller.get(uid)
            if controller is not None and controller in visible:
                return controller
            return None

        seen: set[LayoutEdge] = set()
        edges: list[LayoutEdge] = []
        for edge in component.edges:
            source, target = host(edge.source), host(edge.target)
            if source is None or target is None or source == target:
                continue
            projected = LayoutEdge(source=source, target=target, kind=edge.kind)
            if projected not in seen:
                seen.add(projected)
                edges.append(projected)
        return edges
