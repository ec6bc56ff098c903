"""Live cluster source backed by kubernetes-asyncio."""

from __future__ import annotations

from typing import Any

from kubetopo.observability.logging import get_logger
from kubetopo.source.base import KindSpec, ResourceSource

_log = get_logger("source.kubernetes")

# Typed client per API group; anything else goes through CustomObjectsApi.
_TYPED_APIS = {
    "": "CoreV1Api",
    "apps": "AppsV1Api",
    "batch": "BatchV1Api",
    "networking.k8s.io": "NetworkingV1Api",
}

# Payload that must never leave the source.
_SECRET_FIELDS = ("data", "stringData")


async def load_client_config(context: str = "") -> None:
    """Configure kubernetes-asyncio from in-cluster config, else kubeconfig."""
    # Import lazily: kubernetes-asyncio probes the environment on import.
    import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]

    if not context:
        try:
            # load_incluster_config() is synchronous in kubernetes-asyncio
            k8s_config.load_incluster_config()
            _log.info("k8s_client_configured", source="in_cluster")
            return
        except k8s_config.ConfigException:
            pass
    await k8s_config.load_kube_config(context=context or None)
    _log.info("k8s_client_configured", source="kubeconfig", context=context or "current")


class KubernetesResourceSource(ResourceSource):
    """Lists resources through the typed APIs and CustomObjectsApi."""

    def __init__(self, api_client: Any, timeout_seconds: int = 20) -> None:
        self._api_client = api_client
        self._timeout = timeout_seconds
        self._apis: dict[str, Any] = {}

    @classmethod
    async def create(cls, context: str = "", timeout_seconds: int = 20) -> KubernetesResourceSource:
        """Load cluster credentials and open an API client."""
        from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

        await load_client_config(context)
        return cls(k8s_client.ApiClient(), timeout_seconds=timeout_seconds)

    def _api(self, name: str) -> Any:
        api = self._apis.get(name)
        if api is None:
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            api = self._apis[name] = getattr(k8s_client, name)(self._api_client)
        return api

    async def list_objects(self, spec: KindSpec, namespace: str | None = None) -> list[dict[str, Any]]:
        typed = _TYPED_APIS.get(spec.group)
        if typed is None:
            items = await self._list_custom(spec, namespace)
        else:
            api = self._api(typed)
            if namespace:
                method = getattr(api, f"list_namespaced_{spec.method}")
                response = await method(namespace, _request_timeout=self._timeout)
            else:
                method = getattr(api, f"list_{spec.method}_for_all_namespaces")
                response = await method(_request_timeout=self._timeout)
            items = self._api_client.sanitize_for_serialization(response).get("items") or []

        if spec.kind == "Secret":
            items = [_strip_secret(item) for item in items]
        return items

    async def _list_custom(self, spec: KindSpec, namespace: str | None) -> list[dict[str, Any]]:
        api = self._api("CustomObjectsApi")
        if namespace:
            response = await api.list_namespaced_custom_object(
                spec.group, spec.version, namespace, spec.plural, _request_timeout=self._timeout
            )
        else:
            response = await api.list_cluster_custom_object(
                spec.group, spec.version, spec.plural, _request_timeout=self._timeout
            )
        return list(response.get("items") or [])

    async def close(self) -> None:
        await self._api_client.close()


def _strip_secret(item: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in item.items() if k not in _SECRET_FIELDS}
