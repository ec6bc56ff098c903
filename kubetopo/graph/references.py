"""Shared-reference resolver.

ConfigMaps, Secrets and PersistentVolumeClaims are routinely reused by
unrelated workloads. Connecting every consumer would merge whole namespaces
into one application, so references are counted per root owner first:

    pass 1 -- for each pod, resolve its root owner and collect every config
              object it references (volumes, projected sources, env and
              envFrom of containers and init containers)
    pass 2 -- an object referenced by exactly one root owner is connected to
              its pods; anything referenced by more is marked shared and
              produces no edge

The resolver also records, per controller, the config objects its pods use.
Those surface as badges on the controller node whether shared or not.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from kubetopo.graph.fields import as_list, as_mapping
from kubetopo.graph.models import ConfigRef, EdgeKind, RelationshipGraph
from kubetopo.models.resources import ResourceRecord
from kubetopo.observability.logging import get_logger

_logger = get_logger("graph.references")

CONFIG_KINDS = ("ConfigMap", "Secret", "PersistentVolumeClaim")


@dataclass
class PodReferences:
    """Config object names referenced by one pod, per kind."""

    config_maps: set[str] = field(default_factory=set)
    secrets: set[str] = field(default_factory=set)
    claims: set[str] = field(default_factory=set)

    def by_kind(self) -> dict[str, set[str]]:
        return {
            "ConfigMap": self.config_maps,
            "Secret": self.secrets,
            "PersistentVolumeClaim": self.claims,
        }


def collect_references(pod_spec: Mapping[str, Any]) -> PodReferences:
    """Extract every ConfigMap/Secret/PVC name a pod spec references."""
    refs = PodReferences()
    for volume in as_list(pod_spec.get("volumes")):
        volume = as_mapping(volume)
        _add(refs.config_maps, as_mapping(volume.get("configMap")).get("name"))
        _add(refs.secrets, as_mapping(volume.get("secret")).get("secretName"))
        _add(refs.claims, as_mapping(volume.get("persistentVolumeClaim")).get("claimName"))
        for source in as_list(as_mapping(volume.get("projected")).get("sources")):
            source = as_mapping(source)
            _add(refs.config_maps, as_mapping(source.get("configMap")).get("name"))
            _add(refs.secrets, as_mapping(source.get("secret")).get("name"))

    for key in ("containers", "initContainers"):
        for container in as_list(pod_spec.get(key)):
            container = as_mapping(container)
            for env in as_list(container.get("env")):
                value_from = as_mapping(as_mapping(env).get("valueFrom"))
                _add(refs.config_maps, as_mapping(value_from.get("configMapKeyRef")).get("name"))
                _add(refs.secrets, as_mapping(value_from.get("secretKeyRef")).get("name"))
            for env_from in as_list(container.get("envFrom")):
                env_from = as_mapping(env_from)
                _add(refs.config_maps, as_mapping(env_from.get("configMapRef")).get("name"))
                _add(refs.secrets, as_mapping(env_from.get("secretRef")).get("name"))
    return refs


def resolve_shared_references(graph: RelationshipGraph) -> None:
    """Mark shared config objects and connect exclusive ones to their pods."""
    config_index = {
        (r.kind, r.namespace or "", r.name): r.uid for r in graph.records_of_kind(*CONFIG_KINDS)
    }
    pods = [p for p in graph.records_of_kind("Pod") if p.uid not in graph.static_pods]
    pod_refs = {pod.uid: collect_references(pod.spec) for pod in pods}

    # Pass 1: distinct root owners per referenced object.
    owners: dict[tuple[str, str, str], set[str]] = {}
    for pod in pods:
        root = graph.root_owner(pod.uid)
        for kind, names in pod_refs[pod.uid].by_kind().items():
            for name in names:
                owners.setdefault((kind, pod.namespace or "", name), set()).add(root)

    for key, roots in owners.items():
        uid = config_index.get(key)
        if uid is not None and len(roots) > 1:
            graph.shared.add(uid)

    # Pass 2: connect exclusive objects (root-owner count exactly 1).
    for pod in pods:
        for kind, names in pod_refs[pod.uid].by_kind().items():
            for name in sorted(names):
                key = (kind, pod.namespace or "", name)
                uid = config_index.get(key)
                if uid is None or len(owners[key]) != 1:
                    continue
                graph.add_edge(uid, pod.uid, EdgeKind.OWNER)

    _collect_controller_configs(graph, pods, pod_refs, config_index)
    _logger.debug(
        "shared_references_resolved",
        referenced=len(owners),
        shared=len(graph.shared),
    )


def _collect_controller_configs(
    graph: RelationshipGraph,
    pods: list[ResourceRecord],
    pod_refs: dict[str, PodReferences],
    config_index: dict[tuple[str, str, str], str],
) -> None:
    names_by_controller: dict[str, dict[str, set[str]]] = {}
    for pod in pods:
        controller = graph.pod_controller.get(pod.uid)
        if controller is None:
            continue
        per_kind = names_by_controller.setdefault(controller, {})
        for kind, names in pod_refs[pod.uid].by_kind().items():
            per_kind.setdefault(kind, set()).update(names)

    for controller, per_kind in names_by_controller.items():
        namespace = graph.records[controller].namespace
        refs: list[ConfigRef] = []
        for kind in CONFIG_KINDS:
            for name in sorted(per_kind.get(kind, ())):
                uid = config_index.get((kind, namespace or "", name))
                refs.append(
                    ConfigRef(
                        kind=kind,
                        name=name,
                        namespace=namespace,
                        uid=uid,
                        shared=uid is not None and uid in graph.shared,
                    )
                )
        if refs:
            graph.controller_configs[controller] = refs


def _add(target: set[str], value: object) -> None:
    if value:
        target.add(str(value))
