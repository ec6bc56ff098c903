"""Resource record data structures.

A ResourceRecord is the snapshot of one cluster object as handed over by a
Resource Source. Only identity, labels and owner references are interpreted
generically; ``spec`` and ``status`` stay opaque and are consulted by the
individual relationship heuristics.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


class InvalidRecordError(ValueError):
    """Raised when a raw API object cannot be turned into a ResourceRecord."""


@dataclass(frozen=True)
class OwnerReference:
    """A declared parent object (``metadata.ownerReferences[]``)."""

    uid: str
    kind: str
    name: str


@dataclass(frozen=True)
class ResourceIdentity:
    """Identity tuple handed to the detail-lookup collaborator."""

    kind: str
    name: str
    namespace: str | None
    api_version: str
    uid: str


@dataclass(frozen=True)
class ResourceRecord:
    """Snapshot of one cluster object.

    Immutable: graph and layout passes index records by ``uid`` and never
    mutate them.
    """

    uid: str
    kind: str
    name: str
    namespace: str | None = None
    api_version: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    owner_references: tuple[OwnerReference, ...] = ()
    spec: dict[str, Any] = field(default_factory=dict)
    status: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        """Return the ``(namespace, name)`` lookup key."""
        return (self.namespace or "", self.name)

    @property
    def sort_key(self) -> tuple[str, str, str, str]:
        return (self.namespace or "", self.kind, self.name, self.uid)

    @property
    def identity(self) -> ResourceIdentity:
        return ResourceIdentity(
            kind=self.kind,
            name=self.name,
            namespace=self.namespace,
            api_version=self.api_version,
            uid=self.uid,
        )

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], kind: str | None = None) -> ResourceRecord:
        """Build a record from a raw API object.

        List responses omit ``kind`` on their items, so the caller may pass
        it explicitly; an explicit *kind* wins over the object's own field.

        Raises:
            InvalidRecordError: metadata is missing or has no uid/name.
        """
        if not isinstance(raw, Mapping):
            raise InvalidRecordError("resource object is not a mapping")
        metadata = raw.get("metadata")
        if not isinstance(metadata, Mapping):
            raise InvalidRecordError("resource object has no metadata")

        uid = metadata.get("uid")
        name = metadata.get("name")
        record_kind = kind or raw.get("kind")
        if not uid or not name:
            raise InvalidRecordError(f"{record_kind or 'object'} is missing metadata.uid or metadata.name")
        if not record_kind:
            raise InvalidRecordError(f"object {name} has no kind")

        namespace = metadata.get("namespace") or None
        spec = raw.get("spec")
        status = raw.get("status")
        return cls(
            uid=str(uid),
            kind=str(record_kind),
            name=str(name),
            namespace=str(namespace) if namespace is not None else None,
            api_version=str(raw.get("apiVersion") or ""),
            labels=_parse_labels(metadata.get("labels")),
            owner_references=_parse_owner_references(metadata.get("ownerReferences")),
            spec=dict(spec) if isinstance(spec, Mapping) else {},
            status=dict(status) if isinstance(status, Mapping) else {},
        )


def _parse_labels(raw: object) -> dict[str, str]:
    if not isinstance(raw, Mapping):
        return {}
    return {str(k): str(v) for k, v in raw.items() if v is not None}


def _parse_owner_references(raw: object) -> tuple[OwnerReference, ...]:
    if not isinstance(raw, list):
        return ()
    refs: list[OwnerReference] = []
    for item in raw:
        if not isinstance(item, Mapping) or not item.get("uid"):
            continue
        refs.append(
            OwnerReference(
                uid=str(item["uid"]),
                kind=str(item.get("kind") or ""),
                name=str(item.get("name") or ""),
            )
        )
    return tuple(refs)
