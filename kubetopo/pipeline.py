"""The full, pure topology pass: records in, packed applications out."""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass, field

from kubetopo.graph import build_graph, group_components, resolve_shared_references
from kubetopo.layout import LayoutEngine, pack_applications
from kubetopo.models.config import LayoutConfig
from kubetopo.models.layout import Application
from kubetopo.models.resources import ResourceRecord
from kubetopo.observability import metrics
from kubetopo.observability.logging import get_logger

_logger = get_logger("pipeline")


@dataclass
class Topology:
    """Packed applications plus the canvas extent."""

    applications: list[Application] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0
    resource_count: int = 0


def build_topology(records: Iterable[ResourceRecord], config: LayoutConfig | None = None) -> Topology:
    """Run graph building, shared-reference resolution, grouping, layout and packing.

    Never raises on malformed spec data; identical input yields identical output.
    """
    started = time.perf_counter()
    records = list(records)

    graph = build_graph(records)
    resolve_shared_references(graph)
    groups = group_components(graph)

    engine = LayoutEngine(config)
    applications = [engine.layout_group(graph, group) for group in groups]
    canvas = pack_applications(applications, engine.config)

    elapsed = time.perf_counter() - started
    metrics.topology_builds_total.inc()
    metrics.topology_build_seconds.observe(elapsed)
    metrics.applications.set(len(canvas.applications))
    _logger.info(
        "topology_built",
        resources=graph.node_count,
        edges=graph.edge_count,
        static_pods=len(graph.static_pods),
        shared=len(graph.shared),
        applications=len(canvas.applications),
        duration_ms=round(elapsed * 1000, 2),
    )
    return Topology(
        applications=canvas.applications,
        width=canvas.width,
        height=canvas.height,
        resource_count=graph.node_count,
    )
