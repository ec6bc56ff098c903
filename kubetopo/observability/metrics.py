"""Prometheus metrics for topology builds and resource fetches.

All collectors live on a dedicated registry so that repeated app
construction in tests never trips duplicate-registration errors on the
process-wide default registry.
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

REGISTRY = CollectorRegistry(auto_describe=True)

topology_builds_total = Counter(
    "kubetopo_topology_builds_total",
    "Completed topology computations.",
    registry=REGISTRY,
)

topology_build_seconds = Histogram(
    "kubetopo_topology_build_seconds",
    "Wall time of one graph + layout pass.",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
    registry=REGISTRY,
)

fetch_failures_total = Counter(
    "kubetopo_fetch_failures_total",
    "Resource kind list requests that failed and degraded to an empty list.",
    ["kind"],
    registry=REGISTRY,
)

applications = Gauge(
    "kubetopo_applications",
    "Applications in the most recent topology.",
    registry=REGISTRY,
)


def render_latest() -> bytes:
    """Return the text exposition of every kubetopo metric."""
    return generate_latest(REGISTRY)
