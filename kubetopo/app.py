"""Application bootstrap for kubetopo.

Wires the components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → resource source → topology service → REST

Shutdown is graceful: components are stopped in reverse startup order.
Each component's stop error is caught and logged independently so that a
single failure does not prevent the rest from shutting down cleanly.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from kubetopo.config import load_config
from kubetopo.models.config import KubeTopoConfig
from kubetopo.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class KubeTopoApp:
    """Application root. Owns every component and coordinates their lifecycle.

    ``stop()`` on an app that was never started (or already stopped) is safe.
    """

    def __init__(self, config: KubeTopoConfig | None = None) -> None:
        self.config = config
        self._source: object | None = None
        self._service: object | None = None
        self._rest_server: object | None = None
        self._background_tasks: list[asyncio.Task[None]] = []
        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level, self.config.log.format)
        self._log = get_logger("app")
        self._log.info("kubetopo_starting", version=_kubetopo_version())

        # --- 3. Resource source -----------------------------------------
        await self._start_source()

        # --- 4. Topology service ----------------------------------------
        await self._start_service()

        # --- 5. REST API ------------------------------------------------
        await self._start_rest()

        self._running = True
        self._log.info("kubetopo_started", host=self.config.api.host, port=self.config.api.port)

    async def _start_source(self) -> None:
        """Open the cluster connection.

        Non-fatal: without a source the API stays up and answers 503.
        """
        assert self._log is not None
        assert self.config is not None
        try:
            from kubetopo.source import KubernetesResourceSource

            self._source = await KubernetesResourceSource.create(
                context=self.config.kube.context,
                timeout_seconds=self.config.kube.fetch_timeout_seconds,
            )
        except Exception as exc:
            self._log.warning("resource_source_unavailable", error=str(exc))
            self._source = None

    async def _start_service(self) -> None:
        assert self._log is not None
        assert self.config is not None
        try:
            from kubetopo.service import TopologyCache, TopologyService

            self._service = TopologyService(
                source=self._source,  # type: ignore[arg-type]
                cache=TopologyCache(ttl_seconds=self.config.service.cache_ttl_seconds),
                layout_config=self.config.layout,
                default_namespace=self.config.service.namespace,
            )
        except Exception as exc:
            raise _ComponentError("service", exc) from exc

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server."""
        assert self._log is not None
        assert self.config is not None
        try:
            import uvicorn

            from kubetopo.api import create_app

            fastapi_app = create_app(service=self._service, config=self.config)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host=self.config.api.host,
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("kubetopo_shutting_down")
        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True  # type: ignore[attr-defined]
        if self._background_tasks:
            _done, pending = await asyncio.wait(self._background_tasks, timeout=_SHUTDOWN_GRACE_SECONDS)
            for task in pending:
                task.cancel()
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()
        self._rest_server = None

        # The service owns the source and closes it.
        await self._stop_component("service", self._service)
        self._service = None
        self._source = None
        log.info("kubetopo_stopped")

    async def _stop_component(self, name: str, component: object | None) -> None:
        """Call stop() on a component if it has that method, catching all errors."""
        if component is None:
            return
        log = self._log or get_logger("app")
        stop_fn = getattr(component, "stop", None)
        if stop_fn is None:
            return
        try:
            result = stop_fn()
            if asyncio.iscoroutine(result):
                await asyncio.wait_for(result, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component_stop_timed_out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component_stop_failed", component=name, error=str(exc))


def _kubetopo_version() -> str:
    from kubetopo import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: KubeTopoConfig | None = None) -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = KubeTopoApp(config)
    loop = asyncio.get_running_loop()

    shutdown_triggered = False

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        while app._running:
            await asyncio.sleep(1)
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical("fatal_startup_error", component=exc.component, error=str(exc.cause))
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app._running:
            await app.stop()
