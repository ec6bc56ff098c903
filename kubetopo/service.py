"""Topology service: cached, coalesced refreshes over a resource source.

TopologyCache    -- Explicit per-scope result cache with an injected
                    lifetime and clock.
TopologyService  -- Fetches a snapshot, runs the pure pass in a worker
                    thread and stores the result. Concurrent requests for
                    the same scope share one in-flight refresh, and a
                    result never replaces one from a newer refresh.
"""

from __future__ import annotations

import asyncio
import itertools
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from kubetopo.models.config import LayoutConfig
from kubetopo.models.layout import Application
from kubetopo.models.resources import ResourceIdentity
from kubetopo.observability.logging import get_logger
from kubetopo.pipeline import build_topology
from kubetopo.source.base import ResourceSource, fetch_snapshot

_log = get_logger("service")


class TopologyUnavailableError(Exception):
    """Raised when no refresh can run at all (no usable resource source)."""


@dataclass
class TopologyResult:
    """One computed topology for a namespace scope."""

    namespace: str | None
    generation: int
    generated_at: datetime
    applications: list[Application] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0
    failed_kinds: list[str] = field(default_factory=list)
    resource_count: int = 0
    identities: dict[str, ResourceIdentity] = field(default_factory=dict)

    def find_application(self, app_id: str) -> Application | None:
        for app in self.applications:
            if app.id == app_id:
                return app
        return None


@dataclass
class _CacheEntry:
    result: TopologyResult
    stored_at: float


class TopologyCache:
    """Per-scope cache of the newest topology result.

    A stored result is served while younger than ``ttl_seconds``; a TTL of
    zero disables serving from cache but still tracks the newest generation.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}

    def get(self, scope: str) -> TopologyResult | None:
        """Return the cached result for *scope* if it is still fresh."""
        entry = self._entries.get(scope)
        if entry is None or self._clock() - entry.stored_at >= self._ttl:
            return None
        return entry.result

    def latest(self, scope: str) -> TopologyResult | None:
        """Return the newest stored result regardless of age."""
        entry = self._entries.get(scope)
        return entry.result if entry is not None else None

    def store(self, scope: str, result: TopologyResult) -> bool:
        """Store *result* unless a newer generation is already present."""
        current = self._entries.get(scope)
        if current is not None and current.result.generation > result.generation:
            return False
        self._entries[scope] = _CacheEntry(result=result, stored_at=self._clock())
        return True

    def invalidate(self, scope: str | None = None) -> None:
        if scope is None:
            self._entries.clear()
        else:
            self._entries.pop(scope, None)


class TopologyService:
    """Serves topologies for namespace scopes."""

    def __init__(
        self,
        source: ResourceSource | None,
        cache: TopologyCache | None = None,
        layout_config: LayoutConfig | None = None,
        default_namespace: str = "",
    ) -> None:
        self._source = source
        self._cache = cache or TopologyCache(ttl_seconds=15)
        self._layout_config = layout_config or LayoutConfig()
        self._default_namespace = default_namespace
        self._generations = itertools.count(1)
        self._inflight: dict[str, asyncio.Task[TopologyResult]] = {}

    @property
    def cache(self) -> TopologyCache:
        return self._cache

    def scope_for(self, namespace: str | None) -> str:
        return namespace if namespace is not None else self._default_namespace

    def latest(self, namespace: str | None = None) -> TopologyResult | None:
        return self._cache.latest(self.scope_for(namespace))

    async def get(self, namespace: str | None = None, force: bool = False) -> TopologyResult:
        """Return a fresh topology for *namespace* ("" = all namespaces).

        Raises:
            TopologyUnavailableError: no resource source is configured.
        """
        scope = self.scope_for(namespace)
        if not force:
            cached = self._cache.get(scope)
            if cached is not None:
                return cached

        task = self._inflight.get(scope)
        if task is None:
            if self._source is None:
                raise TopologyUnavailableError("no resource source is configured")
            task = asyncio.ensure_future(self._refresh(scope))
            self._inflight[scope] = task
            task.add_done_callback(lambda t: self._forget(scope, t))
        else:
            _log.debug("topology_refresh_coalesced", namespace=scope)
        return await asyncio.shield(task)

    def _forget(self, scope: str, task: asyncio.Task[TopologyResult]) -> None:
        if self._inflight.get(scope) is task:
            del self._inflight[scope]

    async def _refresh(self, scope: str) -> TopologyResult:
        assert self._source is not None
        generation = next(self._generations)
        snapshot = await fetch_snapshot(self._source, namespace=scope or None)
        topology = await asyncio.to_thread(build_topology, snapshot.records, self._layout_config)

        result = TopologyResult(
            namespace=scope or None,
            generation=generation,
            generated_at=datetime.now(tz=UTC),
            applications=topology.applications,
            width=topology.width,
            height=topology.height,
            failed_kinds=snapshot.failed_kinds,
            resource_count=topology.resource_count,
            identities={r.uid: r.identity for r in snapshot.records},
        )
        if not self._cache.store(scope, result):
            _log.info("topology_result_superseded", namespace=scope, generation=generation)
            newer = self._cache.latest(scope)
            if newer is not None:
                return newer
        _log.info(
            "topology_refreshed",
            namespace=scope,
            generation=generation,
            applications=len(result.applications),
            failed_kinds=result.failed_kinds,
        )
        return result

    async def stop(self) -> None:
        """Cancel in-flight refreshes and close the source."""
        for task in list(self._inflight.values()):
            task.cancel()
        self._inflight.clear()
        if self._source is not None:
            await self._source.close()
