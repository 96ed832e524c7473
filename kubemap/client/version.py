"""Cluster version detection and normalisation."""

from __future__ import annotations

from typing import Any

from kubemap.client.transport import KubeTransport
from kubemap.errors import ApiRequestError


def prettify_version(version: str, precision: int = 3) -> str:
    """Trim a git version to *precision* dot components, dropping a leading ``v``.

    >>> prettify_version("v1.8.3-gke.2", 2)
    '1.8'
    """
    if not precision or precision < 1:
        precision = 3
    parts = version.split(".")
    if parts[0].startswith("v"):
        parts[0] = parts[0][1:]
    return ".".join(parts[:precision])


async def get_version(transport: KubeTransport) -> dict[str, Any]:
    """Return the API server's ``/version`` document."""
    data = await transport.get_json("/version")
    if not isinstance(data, dict) or not data.get("gitVersion"):
        raise ApiRequestError(500, "Version response has no 'gitVersion'", metadata=data)
    return data


async def get_cluster_version(transport: KubeTransport, precision: int = 2) -> str:
    """Return the normalised ClusterVersionKey of the cluster, e.g. ``"1.8"``."""
    data = await get_version(transport)
    return prettify_version(str(data["gitVersion"]), precision)
