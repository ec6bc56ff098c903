"""Offline source reading a saved ``kubectl get -o json`` document."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from kubetopo.source.base import KindSpec, ResourceSource


class SnapshotFileError(ValueError):
    """Raised when a snapshot file is not a List document or JSON array."""


class FileResourceSource(ResourceSource):
    """Serves objects from a JSON file.

    Accepts a ``List`` document (``{"items": [...]}``) or a bare array.
    Objects must carry their own ``kind``. The file is read once.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._objects: list[dict[str, Any]] | None = None
        self._lock = asyncio.Lock()

    async def load(self) -> list[dict[str, Any]]:
        async with self._lock:
            if self._objects is None:
                text = await asyncio.to_thread(self._path.read_text, encoding="utf-8")
                self._objects = parse_snapshot_document(json.loads(text))
        return self._objects

    async def list_objects(self, spec: KindSpec, namespace: str | None = None) -> list[dict[str, Any]]:
        objects = await self.load()
        matched = []
        for obj in objects:
            if obj.get("kind") != spec.kind:
                continue
            metadata = obj.get("metadata")
            if namespace and (not isinstance(metadata, dict) or metadata.get("namespace") != namespace):
                continue
            if spec.kind == "Secret":
                obj = {k: v for k, v in obj.items() if k not in ("data", "stringData")}
            matched.append(obj)
        return matched


def parse_snapshot_document(document: Any) -> list[dict[str, Any]]:
    """Flatten a List document or array into a list of objects.

    Nested ``List`` items are expanded; non-mapping entries are dropped.
    """
    if isinstance(document, dict):
        if "items" not in document:
            raise SnapshotFileError("snapshot document has no 'items'")
        document = document["items"]
    if not isinstance(document, list):
        raise SnapshotFileError("snapshot must be a List document or a JSON array")

    objects: list[dict[str, Any]] = []
    for item in document:
        if not isinstance(item, dict):
            continue
        kind = str(item.get("kind") or "")
        if kind.endswith("List") and isinstance(item.get("items"), list):
            objects.extend(parse_snapshot_document(item))
        else:
            objects.append(item)
    return objects
