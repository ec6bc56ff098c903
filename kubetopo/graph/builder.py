"""Relationship graph builder.

Infers typed edges between the records of one snapshot using independent
heuristics:

    owner references    -- owner -> child, first owner present in the snapshot
    pod attribution     -- Deployment/StatefulSet/DaemonSet/Job hosts its pods,
                           skipping the ReplicaSet level for Deployments
    controller selector -- spec.selector.matchLabels -> same-namespace pods
    service selector    -- spec.selector -> same-namespace pods
    ingress backends    -- default backend and rule paths -> Service
    gateway routes      -- HTTPRoute/GRPCRoute parentRefs and backendRefs
    network policies    -- spec.podSelector -> owning controller or pod

A heuristic that meets a missing or malformed field produces no edge for
that record and moves on; nothing here raises on bad spec data.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from kubetopo.graph.fields import as_list, as_mapping
from kubetopo.graph.models import EdgeKind, RelationshipGraph
from kubetopo.models.resources import ResourceRecord
from kubetopo.observability.logging import get_logger

_logger = get_logger("graph.builder")

CONTROLLER_KINDS = frozenset({"Deployment", "StatefulSet", "DaemonSet", "Job"})
ROUTE_KINDS = frozenset({"HTTPRoute", "GRPCRoute"})


def build_graph(records: Iterable[ResourceRecord]) -> RelationshipGraph:
    """Build the relationship graph for one snapshot."""
    graph = RelationshipGraph()
    _index_records(graph, records)
    _mark_static_pods(graph)
    _link_owners(graph)
    _attribute_pods(graph)

    pods = PodIndex(graph)
    _link_controller_selectors(graph, pods)
    _link_service_selectors(graph, pods)
    _link_ingresses(graph)
    _link_routes(graph)
    _link_network_policies(graph, pods)
    return graph


def matches_selector(selector: Mapping[str, Any], labels: Mapping[str, str]) -> bool:
    """Exact multi-key equality: every selector pair must be present."""
    return all(labels.get(str(k)) == str(v) for k, v in selector.items())


# ---------------------------------------------------------------------------
# Indexing
# ---------------------------------------------------------------------------


def _index_records(graph: RelationshipGraph, records: Iterable[ResourceRecord]) -> None:
    for record in sorted(records, key=lambda r: r.sort_key):
        if record.uid in graph.records:
            _logger.warning(
                "duplicate_uid_ignored",
                uid=record.uid,
                kind=record.kind,
                name=record.name,
            )
            continue
        graph.records[record.uid] = record


def _mark_static_pods(graph: RelationshipGraph) -> None:
    for pod in graph.records_of_kind("Pod"):
        refs = pod.owner_references
        if refs and all(ref.kind == "Node" for ref in refs):
            graph.static_pods.add(pod.uid)


class PodIndex:
    """Non-static pods bucketed by namespace and by ``(namespace, key, value)``.

    Selector lookups start from the smallest bucket of any selector pair,
    so matching costs the size of that bucket rather than the namespace.
    Every bucket keeps record order.
    """

    def __init__(self, graph: RelationshipGraph) -> None:
        self._by_namespace: dict[str, list[ResourceRecord]] = {}
        self._by_label: dict[tuple[str, str, str], list[ResourceRecord]] = {}
        for pod in graph.records_of_kind("Pod"):
            if pod.uid in graph.static_pods:
                continue
            namespace = pod.namespace or ""
            self._by_namespace.setdefault(namespace, []).append(pod)
            for key, value in pod.labels.items():
                self._by_label.setdefault((namespace, key, value), []).append(pod)

    def in_namespace(self, namespace: str) -> list[ResourceRecord]:
        return self._by_namespace.get(namespace, [])

    def matching(self, namespace: str, selector: Mapping[str, Any]) -> list[ResourceRecord]:
        """Pods in *namespace* whose labels satisfy every selector pair.

        An empty selector matches the whole namespace.
        """
        if not selector:
            return self.in_namespace(namespace)
        candidates = min(
            (self._by_label.get((namespace, str(k), str(v)), []) for k, v in selector.items()),
            key=len,
        )
        return [pod for pod in candidates if matches_selector(selector, pod.labels)]


def _index_by_key(graph: RelationshipGraph, kind: str) -> dict[tuple[str, str], ResourceRecord]:
    return {r.key: r for r in graph.records_of_kind(kind)}


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------


def _link_owners(graph: RelationshipGraph) -> None:
    for record in graph.records.values():
        if record.uid in graph.static_pods:
            continue
        owner_uid = next(
            (
                ref.uid
                for ref in record.owner_references
                if ref.uid in graph.records and ref.uid != record.uid
            ),
            None,
        )
        if owner_uid is None:
            continue
        graph.parent_of[record.uid] = owner_uid
        graph.children_of.setdefault(owner_uid, []).append(record.uid)
        graph.add_edge(owner_uid, record.uid, EdgeKind.OWNER)


def _attribute_pods(graph: RelationshipGraph) -> None:
    for pod in graph.records_of_kind("Pod"):
        if pod.uid in graph.static_pods:
            continue
        controller = _hosting_controller(graph, pod.uid)
        if controller is None:
            continue
        graph.pod_controller[pod.uid] = controller
        graph.controller_pods.setdefault(controller, []).append(pod.uid)

    for pods in graph.controller_pods.values():
        pods.sort(key=lambda uid: (graph.records[uid].name, uid))


def _hosting_controller(graph: RelationshipGraph, pod_uid: str) -> str | None:
    owner_uid = graph.parent_of.get(pod_uid)
    if owner_uid is None:
        return None
    owner = graph.records[owner_uid]
    if owner.kind in CONTROLLER_KINDS:
        return owner_uid
    if owner.kind == "ReplicaSet":
        rs_owner_uid = graph.parent_of.get(owner_uid)
        if rs_owner_uid is not None and graph.records[rs_owner_uid].kind == "Deployment":
            return rs_owner_uid
    return None


# ---------------------------------------------------------------------------
# Label selectors
# ---------------------------------------------------------------------------


def _link_controller_selectors(graph: RelationshipGraph, pods: PodIndex) -> None:
    for controller in graph.records_of_kind(*CONTROLLER_KINDS):
        match_labels = as_mapping(as_mapping(controller.spec.get("selector")).get("matchLabels"))
        if not match_labels:
            continue
        for pod in pods.matching(controller.namespace or "", match_labels):
            if graph.pod_controller.get(pod.uid) == controller.uid:
                graph.connect(controller.uid, pod.uid)
            else:
                graph.add_edge(controller.uid, pod.uid, EdgeKind.SELECTOR)


def _link_service_selectors(graph: RelationshipGraph, pods: PodIndex) -> None:
    for service in graph.records_of_kind("Service"):
        selector = as_mapping(service.spec.get("selector"))
        if not selector:
            continue
        for pod in pods.matching(service.namespace or "", selector):
            graph.add_edge(service.uid, pod.uid, EdgeKind.SERVICE)


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


def _link_ingresses(graph: RelationshipGraph) -> None:
    services = _index_by_key(graph, "Service")
    for ingress in graph.records_of_kind("Ingress"):
        namespace = ingress.namespace or ""
        backends = [ingress.spec.get("defaultBackend"), ingress.spec.get("backend")]
        for rule in as_list(ingress.spec.get("rules")):
            for path in as_list(as_mapping(as_mapping(rule).get("http")).get("paths")):
                backends.append(as_mapping(path).get("backend"))

        for backend in backends:
            service_name = _backend_service_name(backend)
            if not service_name:
                continue
            service = services.get((namespace, service_name))
            if service is None:
                _logger.debug(
                    "ingress_backend_unresolved",
                    ingress=ingress.name,
                    namespace=namespace,
                    service=service_name,
                )
                continue
            graph.add_edge(ingress.uid, service.uid, EdgeKind.INGRESS)


def _backend_service_name(backend: object) -> str:
    backend = as_mapping(backend)
    name = as_mapping(backend.get("service")).get("name") or backend.get("serviceName")
    return str(name) if name else ""


def _link_routes(graph: RelationshipGraph) -> None:
    services = _index_by_key(graph, "Service")
    gateways = _index_by_key(graph, "Gateway")
    for route in graph.records_of_kind(*ROUTE_KINDS):
        namespace = route.namespace or ""

        for ref in as_list(route.spec.get("parentRefs")):
            gateway = _resolve_ref(ref, "Gateway", namespace, gateways)
            if gateway is not None:
                graph.add_edge(gateway.uid, route.uid, EdgeKind.GATEWAY)

        for rule in as_list(route.spec.get("rules")):
            for ref in as_list(as_mapping(rule).get("backendRefs")):
                service = _resolve_ref(ref, "Service", namespace, services)
                if service is not None:
                    graph.add_edge(route.uid, service.uid, EdgeKind.GATEWAY)


def _resolve_ref(
    ref: object,
    default_kind: str,
    namespace: str,
    index: dict[tuple[str, str], ResourceRecord],
) -> ResourceRecord | None:
    ref = as_mapping(ref)
    name = ref.get("name")
    if not name:
        return None
    if ref.get("kind") and ref["kind"] != default_kind:
        return None
    target_namespace = str(ref.get("namespace") or namespace)
    return index.get((target_namespace, str(name)))


# ---------------------------------------------------------------------------
# Network policies
# ---------------------------------------------------------------------------


def _link_network_policies(graph: RelationshipGraph, pods: PodIndex) -> None:
    for policy in graph.records_of_kind("NetworkPolicy"):
        pod_selector = policy.spec.get("podSelector")
        if pod_selector is not None and not isinstance(pod_selector, Mapping):
            continue
        match_labels = as_mapping(as_mapping(pod_selector).get("matchLabels"))

        # dict keeps first-seen order while deduplicating
        targets: dict[str, None] = {}
        for pod in pods.matching(policy.namespace or "", match_labels):
            targets.setdefault(graph.pod_controller.get(pod.uid, pod.uid))

        # Connectivity only when the policy governs a single owner chain.
        exclusive = len({graph.root_owner(t) for t in targets}) == 1
        for target in targets:
            graph.add_edge(target, policy.uid, EdgeKind.NETWORK_POLICY, connect=exclusive)
