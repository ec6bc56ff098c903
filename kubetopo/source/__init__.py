"""Resource sources and the concurrent snapshot fetch."""

from kubetopo.source.base import FETCH_KINDS, KindSpec, ResourceSource, Snapshot, fetch_snapshot
from kubetopo.source.file import FileResourceSource, SnapshotFileError, parse_snapshot_document
from kubetopo.source.kubernetes import KubernetesResourceSource, load_client_config

__all__ = [
    "FETCH_KINDS",
    "FileResourceSource",
    "KindSpec",
    "KubernetesResourceSource",
    "ResourceSource",
    "Snapshot",
    "SnapshotFileError",
    "fetch_snapshot",
    "load_client_config",
]
