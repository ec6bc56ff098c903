"""Tests for the topology cache and refresh coalescing."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any

import pytest

from kubetopo.service import TopologyCache, TopologyResult, TopologyService, TopologyUnavailableError
from kubetopo.source.base import KindSpec, ResourceSource


def _result(generation: int, namespace: str | None = None) -> TopologyResult:
    return TopologyResult(namespace=namespace, generation=generation, generated_at=datetime.now(tz=UTC))


class _FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class _GatedSource(ResourceSource):
    """Blocks every list call until ``release`` is set; counts snapshot fetches."""

    def __init__(self, objects: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.objects = objects or {}
        self.release = asyncio.Event()
        self.release.set()
        self.pod_calls = 0
        self.closed = False

    async def list_objects(self, spec: KindSpec, namespace: str | None = None) -> list[dict[str, Any]]:
        if spec.kind == "Pod":
            self.pod_calls += 1
        await self.release.wait()
        return self.objects.get(spec.kind, [])

    async def close(self) -> None:
        self.closed = True


def _pod(name: str, namespace: str = "default") -> dict[str, Any]:
    return {"metadata": {"uid": f"uid-{name}", "name": name, "namespace": namespace, "labels": {"app": name}}}


# ---------------------------------------------------------------------------
# TopologyCache
# ---------------------------------------------------------------------------


class TestTopologyCache:
    def test_fresh_within_ttl(self) -> None:
        clock = _FakeClock()
        cache = TopologyCache(ttl_seconds=10, clock=clock)
        cache.store("", _result(1))
        clock.now += 9.9
        assert cache.get("") is not None
        clock.now += 0.1
        assert cache.get("") is None
        assert cache.latest("").generation == 1  # type: ignore[union-attr]

    def test_zero_ttl_never_serves(self) -> None:
        cache = TopologyCache(ttl_seconds=0, clock=_FakeClock())
        cache.store("", _result(1))
        assert cache.get("") is None

    def test_older_generation_never_replaces_newer(self) -> None:
        cache = TopologyCache(ttl_seconds=10, clock=_FakeClock())
        assert cache.store("", _result(2))
        assert not cache.store("", _result(1))
        assert cache.latest("").generation == 2  # type: ignore[union-attr]

    def test_scopes_are_independent(self) -> None:
        cache = TopologyCache(ttl_seconds=10, clock=_FakeClock())
        cache.store("a", _result(1, "a"))
        assert cache.get("b") is None
        cache.invalidate("a")
        assert cache.get("a") is None

    def test_instances_do_not_share_state(self) -> None:
        first = TopologyCache(ttl_seconds=10)
        first.store("", _result(1))
        assert TopologyCache(ttl_seconds=10).get("") is None


# ---------------------------------------------------------------------------
# TopologyService
# ---------------------------------------------------------------------------


class TestTopologyService:
    async def test_builds_topology(self) -> None:
        service = TopologyService(_GatedSource({"Pod": [_pod("api"), _pod("db")]}))
        result = await service.get()
        assert sorted(a.name for a in result.applications) == ["api", "db"]
        assert result.generation == 1
        assert result.resource_count == 2
        assert "uid-api" in result.identities

    async def test_cached_result_reused(self) -> None:
        source = _GatedSource()
        service = TopologyService(source, cache=TopologyCache(ttl_seconds=60))
        first = await service.get()
        second = await service.get()
        assert first is second
        assert source.pod_calls == 1

    async def test_force_refreshes(self) -> None:
        source = _GatedSource()
        service = TopologyService(source, cache=TopologyCache(ttl_seconds=60))
        await service.get()
        refreshed = await service.get(force=True)
        assert refreshed.generation == 2
        assert source.pod_calls == 2

    async def test_concurrent_requests_share_one_refresh(self) -> None:
        source = _GatedSource()
        source.release.clear()
        service = TopologyService(source, cache=TopologyCache(ttl_seconds=0))

        waiters = [asyncio.ensure_future(service.get("shop")) for _ in range(5)]
        await asyncio.sleep(0)
        source.release.set()
        results = await asyncio.gather(*waiters)

        assert source.pod_calls == 1
        assert len({id(r) for r in results}) == 1
        assert results[0].namespace == "shop"

    async def test_stale_refresh_does_not_replace_newer(self) -> None:
        cache = TopologyCache(ttl_seconds=0)
        service = TopologyService(_GatedSource(), cache=cache)
        # A newer generation already stored by another refresh.
        cache.store("", _result(99))
        result = await service.get()
        assert result.generation == 99
        assert cache.latest("").generation == 99  # type: ignore[union-attr]

    async def test_default_namespace_scope(self) -> None:
        source = _GatedSource({"Pod": [_pod("api", "shop")]})
        service = TopologyService(source, default_namespace="shop")
        result = await service.get()
        assert result.namespace == "shop"
        assert service.latest() is result

    async def test_without_source_unavailable(self) -> None:
        service = TopologyService(None)
        with pytest.raises(TopologyUnavailableError):
            await service.get()

    async def test_stop_closes_source(self) -> None:
        source = _GatedSource()
        service = TopologyService(source)
        await service.stop()
        assert source.closed
