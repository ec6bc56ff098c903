"""kubetopo command-line interface.

Commands:
    layout -- compute the topology once and print the scene as JSON
    serve  -- run the REST service until SIGTERM/SIGINT
"""

from __future__ import annotations

import asyncio
import dataclasses
import json

import click

from kubetopo import __version__
from kubetopo.api.schemas import SceneResponse
from kubetopo.config import load_config
from kubetopo.models.config import LayoutConfig
from kubetopo.observability.logging import LOG_FORMATS, setup_logging
from kubetopo.service import TopologyCache, TopologyService
from kubetopo.source import FileResourceSource, KubernetesResourceSource, ResourceSource

_LOG_LEVELS = ("debug", "info", "warning", "error")


@click.group()
@click.version_option(version=__version__, prog_name="kubetopo")
def cli() -> None:
    """Infer applications from Kubernetes resources and lay them out."""


@cli.command()
@click.option(
    "--snapshot",
    "snapshot_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Read resources from a `kubectl get -o json` file instead of the cluster.",
)
@click.option("--namespace", "-n", default=None, help="Restrict to one namespace (default: all).")
@click.option("--context", default=None, help="Kubeconfig context for live clusters.")
@click.option("--max-row-width", type=click.IntRange(min=1), default=None, help="Canvas row width bound.")
@click.option("--indent", type=click.IntRange(min=0), default=2, show_default=True)
@click.option("--log-level", type=click.Choice(_LOG_LEVELS), default="warning", show_default=True)
def layout(
    snapshot_path: str | None,
    namespace: str | None,
    context: str | None,
    max_row_width: int | None,
    indent: int,
    log_level: str,
) -> None:
    """Compute the topology once and print it as JSON."""
    setup_logging(log_level, "json")
    try:
        config = load_config()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    layout_config = config.layout
    if max_row_width is not None:
        layout_config = dataclasses.replace(layout_config, max_row_width=max_row_width)

    try:
        scene = asyncio.run(
            _compute_scene(
                snapshot_path=snapshot_path,
                namespace=namespace,
                context=context if context is not None else config.kube.context,
                timeout_seconds=config.kube.fetch_timeout_seconds,
                layout_config=layout_config,
            )
        )
    except (OSError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(scene.model_dump_json(indent=indent or None))


async def _compute_scene(
    snapshot_path: str | None,
    namespace: str | None,
    context: str,
    timeout_seconds: int,
    layout_config: LayoutConfig,
) -> SceneResponse:
    source: ResourceSource
    if snapshot_path is not None:
        file_source = FileResourceSource(snapshot_path)
        try:
            await file_source.load()
        except json.JSONDecodeError as exc:
            raise click.ClickException(f"snapshot is not valid JSON: {exc}") from exc
        source = file_source
    else:
        try:
            source = await KubernetesResourceSource.create(context=context, timeout_seconds=timeout_seconds)
        except Exception as exc:
            raise click.ClickException(f"cannot connect to the cluster: {exc}") from exc

    service = TopologyService(
        source=source,
        cache=TopologyCache(ttl_seconds=0),
        layout_config=layout_config,
    )
    try:
        result = await service.get(namespace or "")
    finally:
        await service.stop()
    return SceneResponse.from_result(result)


@cli.command()
@click.option("--host", default=None, help="Bind address (default: KUBETOPO_API_HOST).")
@click.option("--port", type=click.IntRange(1024, 65535), default=None, help="Port (default: KUBETOPO_API_PORT).")
@click.option("--log-format", type=click.Choice(LOG_FORMATS), default=None)
def serve(host: str | None, port: int | None, log_format: str | None) -> None:
    """Run the kubetopo REST service."""
    from kubetopo.app import main

    config = load_config()
    if host is not None:
        config.api.host = host
    if port is not None:
        config.api.port = port
    if log_format is not None:
        config.log.format = log_format
    asyncio.run(main(config))
