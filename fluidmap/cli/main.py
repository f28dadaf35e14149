"""fluidmap CLI entrypoint.

Usage:
    fluidmap dataset demo-data -n fluid-system
    fluidmap dataset demo-data --mock --scenario partial-ready -o json
    fluidmap list -n fluid-system
    fluidmap serve --port 8080
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any, TypeVar

import click

from fluidmap import __version__
from fluidmap.config import load_config
from fluidmap.k8s import ClusterUnreachableError, MockQueryClient, MockScenario, QueryClient, QueryError, connect
from fluidmap.mapper import DiscoveryOptions, Mapper
from fluidmap.models.config import FluidMapConfig
from fluidmap.observability.logging import get_logger, setup_logging
from fluidmap.render import render_dataset_list, render_json, render_tree, render_wide

_log = get_logger("cli")

T = TypeVar("T")

_LOG_LEVELS = ("debug", "info", "warning", "error")


@click.group()
@click.version_option(version=__version__, prog_name="fluidmap")
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level for stderr JSON logs (default: FLUIDMAP_LOG_LEVEL or warning).",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """Map Fluid Datasets to the Kubernetes resources behind them."""
    try:
        config = load_config()
    except ValueError as exc:
        raise click.ClickException(f"invalid configuration: {exc}") from exc
    if log_level:
        config.log.level = log_level.lower()
    setup_logging(config.log.level)
    ctx.obj = config


def _mock_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    fn = click.option(
        "--scenario",
        type=click.Choice([s.value for s in MockScenario]),
        default=MockScenario.HEALTHY.value,
        show_default=True,
        help="Mock cluster state (with --mock).",
    )(fn)
    fn = click.option("--mock", is_flag=True, help="Use the built-in mock cluster instead of a real one.")(fn)
    return fn


def _cluster_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    fn = click.option("--context", "kube_context", default=None, help="kubeconfig context to use.")(fn)
    fn = click.option(
        "--kubeconfig",
        type=click.Path(dir_okay=False),
        default=None,
        help="Path to kubeconfig (default: FLUIDMAP_KUBECONFIG, KUBECONFIG, ~/.kube/config).",
    )(fn)
    return fn


def _apply_cluster_overrides(config: FluidMapConfig, kubeconfig: str | None, kube_context: str | None) -> None:
    if kubeconfig:
        config.kube.kubeconfig = kubeconfig
    if kube_context:
        config.kube.context = kube_context


async def _open_client(config: FluidMapConfig, mock: bool, scenario: str) -> QueryClient:
    if mock:
        return MockQueryClient(scenario)
    return await connect(config)


def _run(config: FluidMapConfig, mock: bool, scenario: str, fn: Callable[[Mapper], Awaitable[T]]) -> T:
    """Run *fn* with a Mapper over a fresh client; query failures exit 1."""

    async def _main() -> T:
        client = await _open_client(config, mock, scenario)
        try:
            return await fn(Mapper(client, timeout=config.mapper.timeout_seconds))
        finally:
            await client.close()

    if mock:
        click.secho(f"Using mock cluster (scenario: {scenario})", fg="cyan", err=True)
    try:
        return asyncio.run(_main())
    except ClusterUnreachableError as exc:
        _log.error("cluster_unreachable", error=str(exc))
        click.secho(f"Cannot reach the cluster: {exc}", fg="red", err=True)
        if not mock:
            click.echo("Tip: use --mock to run without a cluster.", err=True)
        sys.exit(1)
    except QueryError as exc:
        _log.error("query_failed", error=str(exc))
        click.secho(f"Query failed: {exc}", fg="red", err=True)
        sys.exit(1)


@cli.command()
@click.argument("name")
@click.option("-n", "--namespace", default="default", show_default=True, help="Dataset namespace.")
@click.option(
    "-o",
    "--output",
    type=click.Choice(["tree", "json", "wide"]),
    default="tree",
    show_default=True,
    help="Output format.",
)
@click.option("--pods/--no-pods", default=None, help="Include pods under their workload sets.")
@click.option("--timeout", type=click.IntRange(1, 300), default=None, help="Mapping deadline in seconds.")
@_cluster_options
@_mock_options
@click.pass_obj
def dataset(
    config: FluidMapConfig,
    name: str,
    namespace: str,
    output: str,
    pods: bool | None,
    timeout: int | None,
    kubeconfig: str | None,
    kube_context: str | None,
    mock: bool,
    scenario: str,
) -> None:
    """Map the resources behind Dataset NAME.

    Exits 1 when the graph is unhealthy or the cluster cannot be reached.
    """
    _apply_cluster_overrides(config, kubeconfig, kube_context)
    if timeout is not None:
        config.mapper = replace(config.mapper, timeout_seconds=timeout)
    options = DiscoveryOptions(
        include_pods=config.mapper.include_pods if pods is None else pods,
        include_configs=config.mapper.include_configs,
        include_storage=config.mapper.include_storage,
    )

    graph = _run(config, mock, scenario, lambda m: m.map_from_dataset(name, namespace, options))

    renderers = {"json": render_json, "wide": render_wide, "tree": render_tree}
    click.echo(renderers[output](graph))
    if not graph.healthy:
        sys.exit(1)


@cli.command("list")
@click.option("-n", "--namespace", default="default", show_default=True, help="Namespace to list.")
@_cluster_options
@_mock_options
@click.pass_obj
def list_datasets(
    config: FluidMapConfig,
    namespace: str,
    kubeconfig: str | None,
    kube_context: str | None,
    mock: bool,
    scenario: str,
) -> None:
    """List the Datasets in a namespace."""
    _apply_cluster_overrides(config, kubeconfig, kube_context)
    datasets = _run(config, mock, scenario, lambda m: m.list_datasets(namespace))
    click.echo(render_dataset_list(datasets, namespace))


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind address.")
@click.option("--port", type=click.IntRange(1, 65535), default=None, help="Port (default: FLUIDMAP_API_PORT or 8080).")
@_cluster_options
@_mock_options
@click.pass_obj
def serve(
    config: FluidMapConfig,
    host: str,
    port: int | None,
    kubeconfig: str | None,
    kube_context: str | None,
    mock: bool,
    scenario: str,
) -> None:
    """Serve the REST API."""
    import uvicorn

    from fluidmap.api.app import create_app

    _apply_cluster_overrides(config, kubeconfig, kube_context)
    if port is not None:
        config.api.port = port

    async def _serve(mapper: Mapper) -> None:
        app = create_app(client=mapper.client, config=config)
        server = uvicorn.Server(
            uvicorn.Config(
                app=app,
                host=host,
                port=config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
        )
        _log.info("rest_api_starting", host=host, port=config.api.port, mock=mock)
        await server.serve()

    _run(config, mock, scenario, _serve)
