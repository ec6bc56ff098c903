"""Shared record factories and fixtures for kubetopo tests.

Factories build ResourceRecord instances directly with predictable uids
(``<kind>-<namespace>-<name>``) so assertions can name nodes without
looking them up.
"""

from __future__ import annotations

from typing import Any

import pytest
import structlog
from structlog.testing import capture_logs

from kubetopo.models.resources import OwnerReference, ResourceRecord

# ---------------------------------------------------------------------------
# Generic helpers
# ---------------------------------------------------------------------------


def uid_for(kind: str, name: str, namespace: str | None = "default") -> str:
    return f"{kind.lower()}-{namespace or 'cluster'}-{name}"


def owner_ref(record: ResourceRecord) -> OwnerReference:
    return OwnerReference(uid=record.uid, kind=record.kind, name=record.name)


def make_record(
    kind: str,
    name: str,
    namespace: str | None = "default",
    labels: dict[str, str] | None = None,
    owners: tuple[ResourceRecord, ...] = (),
    spec: dict[str, Any] | None = None,
    uid: str | None = None,
) -> ResourceRecord:
    """Create a ResourceRecord with sensible defaults for testing."""
    return ResourceRecord(
        uid=uid or uid_for(kind, name, namespace),
        kind=kind,
        name=name,
        namespace=namespace,
        labels=labels or {},
        owner_references=tuple(owner_ref(o) for o in owners),
        spec=spec or {},
    )


def pod_spec(
    config_maps: tuple[str, ...] = (),
    secrets: tuple[str, ...] = (),
    claims: tuple[str, ...] = (),
) -> dict[str, Any]:
    """A pod spec mounting the named config objects as volumes."""
    volumes: list[dict[str, Any]] = []
    for name in config_maps:
        volumes.append({"name": f"cm-{name}", "configMap": {"name": name}})
    for name in secrets:
        volumes.append({"name": f"secret-{name}", "secret": {"secretName": name}})
    for name in claims:
        volumes.append({"name": f"pvc-{name}", "persistentVolumeClaim": {"claimName": name}})
    return {"containers": [{"name": "main", "image": "nginx"}], "volumes": volumes}


# ---------------------------------------------------------------------------
# Kind factories
# ---------------------------------------------------------------------------


def make_deployment(
    name: str,
    namespace: str = "default",
    labels: dict[str, str] | None = None,
    match_labels: dict[str, str] | None = None,
) -> ResourceRecord:
    spec: dict[str, Any] = {}
    if match_labels is not None:
        spec["selector"] = {"matchLabels": match_labels}
    return make_record("Deployment", name, namespace, labels=labels, spec=spec)


def make_replicaset(name: str, owner: ResourceRecord | None = None, namespace: str = "default") -> ResourceRecord:
    owners = (owner,) if owner is not None else ()
    return make_record("ReplicaSet", name, namespace, owners=owners)


def make_pod(
    name: str,
    owner: ResourceRecord | None = None,
    namespace: str = "default",
    labels: dict[str, str] | None = None,
    spec: dict[str, Any] | None = None,
) -> ResourceRecord:
    owners = (owner,) if owner is not None else ()
    return make_record("Pod", name, namespace, labels=labels, owners=owners, spec=spec or pod_spec())


def make_static_pod(name: str, node: str = "node-1", namespace: str = "kube-system") -> ResourceRecord:
    return ResourceRecord(
        uid=uid_for("Pod", name, namespace),
        kind="Pod",
        name=name,
        namespace=namespace,
        owner_references=(OwnerReference(uid=f"node-{node}", kind="Node", name=node),),
        spec=pod_spec(),
    )


def make_service(name: str, selector: dict[str, str] | None = None, namespace: str = "default") -> ResourceRecord:
    spec = {"selector": selector} if selector is not None else {}
    return make_record("Service", name, namespace, spec=spec)


def make_ingress(
    name: str,
    paths: tuple[str, ...] = (),
    default_backend: str | None = None,
    namespace: str = "default",
) -> ResourceRecord:
    spec: dict[str, Any] = {}
    if default_backend is not None:
        spec["defaultBackend"] = {"service": {"name": default_backend, "port": {"number": 80}}}
    if paths:
        spec["rules"] = [
            {
                "host": "example.com",
                "http": {
                    "paths": [
                        {"path": "/", "pathType": "Prefix", "backend": {"service": {"name": svc, "port": {"number": 80}}}}
                        for svc in paths
                    ]
                },
            }
        ]
    return make_record("Ingress", name, namespace, spec=spec)


def make_config_map(name: str, namespace: str = "default") -> ResourceRecord:
    return make_record("ConfigMap", name, namespace)


def make_network_policy(
    name: str,
    match_labels: dict[str, str] | None = None,
    namespace: str = "default",
) -> ResourceRecord:
    return make_record("NetworkPolicy", name, namespace, spec={"podSelector": {"matchLabels": match_labels or {}}})


def make_web_app(
    name: str = "web",
    namespace: str = "default",
    replicas: int = 2,
    spec: dict[str, Any] | None = None,
) -> list[ResourceRecord]:
    """Deployment -> ReplicaSet -> pods, all labelled ``app=<name>``."""
    deployment = make_deployment(name, namespace, labels={"app": name})
    replicaset = make_replicaset(f"{name}-7d9f8", deployment, namespace)
    pods = [
        make_pod(f"{name}-7d9f8-{i}", replicaset, namespace, labels={"app": name}, spec=spec)
        for i in range(replicas)
    ]
    return [deployment, replicaset, *pods]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def web_snapshot() -> list[ResourceRecord]:
    """The canonical example: one Deployment, its ReplicaSet, two pods and a Service."""
    return [*make_web_app("web"), make_service("web-svc", selector={"app": "web"})]


@pytest.fixture
def captured_logs():
    with capture_logs() as logs:
        yield logs


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo logging configured by a test (the CLI configures a per-run stderr)."""
    yield
    structlog.reset_defaults()
