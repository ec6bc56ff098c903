"""Resource source abstraction and the concurrent snapshot fetch.

ResourceSource -- ABC every source must implement.
fetch_snapshot -- Lists every kind concurrently; a kind whose request
                  fails degrades to an empty list and never aborts the
                  snapshot.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from kubetopo.models.resources import InvalidRecordError, ResourceRecord
from kubetopo.observability.logging import get_logger
from kubetopo.observability.metrics import fetch_failures_total

_log = get_logger("source")


@dataclass(frozen=True)
class KindSpec:
    """How to list one resource kind."""

    kind: str
    group: str  # "" for the core group
    version: str
    plural: str
    method: str  # snake_case name used by the typed client methods

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version


FETCH_KINDS: tuple[KindSpec, ...] = (
    KindSpec("Pod", "", "v1", "pods", "pod"),
    KindSpec("Deployment", "apps", "v1", "deployments", "deployment"),
    KindSpec("ReplicaSet", "apps", "v1", "replicasets", "replica_set"),
    KindSpec("StatefulSet", "apps", "v1", "statefulsets", "stateful_set"),
    KindSpec("DaemonSet", "apps", "v1", "daemonsets", "daemon_set"),
    KindSpec("Job", "batch", "v1", "jobs", "job"),
    KindSpec("CronJob", "batch", "v1", "cronjobs", "cron_job"),
    KindSpec("Service", "", "v1", "services", "service"),
    KindSpec("Ingress", "networking.k8s.io", "v1", "ingresses", "ingress"),
    KindSpec("ConfigMap", "", "v1", "configmaps", "config_map"),
    KindSpec("Secret", "", "v1", "secrets", "secret"),
    KindSpec("PersistentVolumeClaim", "", "v1", "persistentvolumeclaims", "persistent_volume_claim"),
    KindSpec("NetworkPolicy", "networking.k8s.io", "v1", "networkpolicies", "network_policy"),
    KindSpec("Gateway", "gateway.networking.k8s.io", "v1", "gateways", "gateway"),
    KindSpec("HTTPRoute", "gateway.networking.k8s.io", "v1", "httproutes", "http_route"),
    KindSpec("GRPCRoute", "gateway.networking.k8s.io", "v1", "grpcroutes", "grpc_route"),
)


@dataclass
class Snapshot:
    """Records of one refresh plus the kinds that could not be listed."""

    records: list[ResourceRecord] = field(default_factory=list)
    failed_kinds: list[str] = field(default_factory=list)
    skipped: int = 0


class ResourceSource(ABC):
    """Abstract base class for resource sources.

    ``list_objects`` returns raw API objects (camelCase dictionaries) and
    may raise; ``fetch_snapshot`` isolates the failure to that one kind.
    """

    @abstractmethod
    async def list_objects(self, spec: KindSpec, namespace: str | None = None) -> list[dict[str, Any]]:
        """List every object of *spec* in *namespace* (all namespaces when None)."""

    async def close(self) -> None:  # noqa: B027
        """Release any held connections."""


async def fetch_snapshot(
    source: ResourceSource,
    namespace: str | None = None,
    kinds: tuple[KindSpec, ...] = FETCH_KINDS,
) -> Snapshot:
    """List every kind concurrently and parse the results into records."""
    results = await asyncio.gather(
        *(source.list_objects(spec, namespace) for spec in kinds),
        return_exceptions=True,
    )

    snapshot = Snapshot()
    for spec, result in zip(kinds, results, strict=True):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            fetch_failures_total.labels(kind=spec.kind).inc()
            snapshot.failed_kinds.append(spec.kind)
            _log.warning(
                "resource_list_failed",
                kind=spec.kind,
                namespace=namespace or "",
                error=str(result) or type(result).__name__,
            )
            continue

        for raw in result:
            if isinstance(raw, dict) and not raw.get("apiVersion"):
                raw = {**raw, "apiVersion": spec.api_version}
            try:
                snapshot.records.append(ResourceRecord.from_dict(raw, kind=spec.kind))
            except InvalidRecordError as exc:
                snapshot.skipped += 1
                _log.debug("resource_object_skipped", kind=spec.kind, reason=str(exc))

    _log.debug(
        "snapshot_fetched",
        namespace=namespace or "",
        records=len(snapshot.records),
        failed_kinds=snapshot.failed_kinds,
        skipped=snapshot.skipped,
    )
    return snapshot
