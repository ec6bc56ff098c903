"""Resource relationship graph.

Infers the implicit application structure of a cluster snapshot: typed
edges between records (owner references, label selectors, ingress and
gateway routing, network policies), shared config-object disambiguation
and connected-component grouping.
"""

from kubetopo.graph.builder import build_graph, matches_selector
from kubetopo.graph.grouping import ApplicationGroup, Component, display_name, group_components
from kubetopo.graph.models import ConfigRef, Edge, EdgeKind, RelationshipGraph
from kubetopo.graph.references import collect_references, resolve_shared_references

__all__ = [
    "ApplicationGroup",
    "Component",
    "ConfigRef",
    "Edge",
    "EdgeKind",
    "RelationshipGraph",
    "build_graph",
    "collect_references",
    "display_name",
    "group_components",
    "matches_selector",
    "resolve_shared_references",
]
