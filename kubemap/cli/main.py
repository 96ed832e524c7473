"""Click entry point for the ``kubemap`` command.

Commands:
    map      -- discover a cluster and print its resource -> group-version map.
    resolve  -- print the group-version and scope serving one resource type.
    compare  -- compare two API version tokens.

Exit codes: 0 success, 1 partial discovery or unresolved resource,
2 configuration or version detection failure.
"""

from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click

from kubemap.apimap.cache import ApiMapCache
from kubemap.apimap.versions import compare_versions
from kubemap.client.kubeconfig import load_kubeconfig
from kubemap.client.requests import KubeClient
from kubemap.config import load_config
from kubemap.errors import ClusterVersionError, KubeconfigError, ParseError, ResourceNotMappedError
from kubemap.models.apimap import DiscoveryResult
from kubemap.models.config import KubeMapConfig
from kubemap.observability.logging import get_logger, setup_logging

EXIT_PARTIAL = 1
EXIT_FATAL = 2


@dataclass
class _State:
    config: KubeMapConfig
    kubeconfig: dict[str, Any] | None = None


def _echo_json(data: object) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=True))


def _client(state: _State) -> KubeClient:
    if state.kubeconfig is None:
        state.kubeconfig = load_kubeconfig(state.config.client.kubeconfig)
    cache = ApiMapCache(rank_ga=state.config.discovery.rank_ga)
    return KubeClient.from_kubeconfig(
        state.kubeconfig,
        cache,
        config=state.config.client,
        precision=state.config.discovery.version_precision,
        base_dir=Path(state.config.client.kubeconfig).expanduser().parent,
    )


@click.group()
@click.option("--kubeconfig", "kubeconfig_path", default=None, help="Path to the kubeconfig file.")
@click.option("--context", default=None, help="Kubeconfig context (defaults to current-context).")
@click.option("--log-level", default=None, type=click.Choice(["debug", "info", "warning", "error"]))
@click.option("--json-logs/--console-logs", default=True, help="Log format on stderr.")
@click.pass_context
def cli(
    ctx: click.Context,
    kubeconfig_path: str | None,
    context: str | None,
    log_level: str | None,
    json_logs: bool,
) -> None:
    """Resolve Kubernetes resources to their API group/version."""
    try:
        config = load_config()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    if kubeconfig_path:
        config.client.kubeconfig = kubeconfig_path
    if context:
        config.client.context = context
    if log_level:
        config.log.level = log_level

    setup_logging(config.log.level, json_output=json_logs)
    ctx.obj = _State(config=config)


@cli.command(name="map")
@click.pass_obj
def map_cmd(state: _State) -> None:
    """Discover every API group and print the resource map as JSON."""
    log = get_logger("cli")

    async def _run() -> DiscoveryResult:
        async with _client(state) as client:
            return await client.discovery.build()

    try:
        result = asyncio.run(_run())
    except (KubeconfigError, ClusterVersionError) as exc:
        log.error("api_map_build_failed", error=str(exc))
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_FATAL)

    _echo_json({"clusterVersion": result.cluster_version, "resources": result.to_dict()})
    for err in result.errors:
        click.echo(f"Warning: {err}", err=True)
    if not result.ok:
        sys.exit(EXIT_PARTIAL)


@cli.command()
@click.argument("resource_type")
@click.pass_obj
def resolve(state: _State, resource_type: str) -> None:
    """Print the group-version serving RESOURCE_TYPE (singular or plural)."""

    async def _run() -> dict[str, object]:
        async with _client(state) as client:
            found = await client.discovery.resolve(resource_type)
            return {"resource": found.resource, **found.mapping.to_dict()}

    try:
        _echo_json(asyncio.run(_run()))
    except ResourceNotMappedError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_PARTIAL)
    except (KubeconfigError, ClusterVersionError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_FATAL)


@cli.command()
@click.argument("version_a")
@click.argument("version_b")
@click.pass_obj
def compare(state: _State, version_a: str, version_b: str) -> None:
    """Compare two API versions, e.g. ``v1beta2 v1alpha1``; prints -1, 0 or 1."""
    try:
        result = compare_versions(version_a, version_b, rank_ga=state.config.discovery.rank_ga)
    except ParseError as exc:
        raise click.BadParameter(str(exc)) from exc
    click.echo(int(result))
