"""Discovery orchestration: fetch every group-version and fold it into the cache.

Build sequence for one cluster:

1. detect the cluster version (the only fatal step);
2. fold ``/api/v1`` (core group, no preferred version);
3. list ``/apis`` and, for every group and every version, fold
   ``/apis/<groupVersion>`` with the group's preferred version.

Every fetch+fold runs as its own task in a single ``asyncio.TaskGroup``.
A task that fails records a :class:`DiscoveryError` and returns normally, so
one broken group-version never cancels the others.  The caller receives the
map that could be built together with every collected error.
"""

from __future__ import annotations

import asyncio

import structlog

from kubemap.apimap.cache import ApiMapCache
from kubemap.client.transport import KubeTransport
from kubemap.client.version import get_cluster_version
from kubemap.errors import ApiRequestError, ClusterVersionError, DiscoveryError, ResourceNotMappedError
from kubemap.models.apimap import ApiGroup, DiscoveryResponse, DiscoveryResult, FallbackAll, Found, UnknownCluster

_log = structlog.get_logger(component="apimap.discovery")

CORE_PATH = "/api/v1"
GROUPS_PATH = "/apis"


class DiscoveryService:
    """Builds and queries the API map of the cluster behind *transport*.

    Args:
        transport: Transport to the cluster's API server.
        cache:     Shared cache; several services (one per cluster) may
                   fold into the same cache.
        precision: Number of version components kept in the cluster key.
    """

    def __init__(self, transport: KubeTransport, cache: ApiMapCache, precision: int = 2) -> None:
        self._transport = transport
        self._cache = cache
        self._precision = precision

    @property
    def cache(self) -> ApiMapCache:
        return self._cache

    async def cluster_version(self) -> str:
        """Detect the cluster's normalised version key.

        Raises:
            ClusterVersionError: if ``/version`` cannot be fetched or parsed.
        """
        try:
            return await get_cluster_version(self._transport, self._precision)
        except ApiRequestError as exc:
            _log.error("cluster_version_detection_failed", error=str(exc), status_code=exc.status_code)
            raise ClusterVersionError(exc) from exc

    async def build(self, cluster_version: str | None = None) -> DiscoveryResult:
        """Discover every API group of the cluster and fold it into the cache.

        Args:
            cluster_version: Skip version detection and fold under this key.

        Returns:
            DiscoveryResult with the cluster's map and any per-fetch errors.

        Raises:
            ClusterVersionError: if version detection fails.
        """
        if cluster_version is None:
            cluster_version = await self.cluster_version()

        errors: list[DiscoveryError] = []
        async with asyncio.TaskGroup() as tg:
            tg.create_task(self._fold_path(cluster_version, CORE_PATH, None, errors))
            tg.create_task(self._fold_groups(cluster_version, tg, errors))

        errors.sort(key=lambda e: e.path)
        result = DiscoveryResult(
            cluster_version=cluster_version,
            resources=self._cache.resources(cluster_version) or {},
            errors=errors,
        )
        log = _log.info if result.ok else _log.warning
        log(
            "api_map_built",
            cluster_version=cluster_version,
            resources=len(result.resources),
            errors=len(errors),
        )
        return result

    async def _fold_groups(
        self,
        cluster_version: str,
        tg: asyncio.TaskGroup,
        errors: list[DiscoveryError],
    ) -> None:
        try:
            doc = await self._transport.get_json(GROUPS_PATH)
            entries = doc.get("groups") or ()
        except Exception as exc:  # noqa: BLE001
            self._record(errors, GROUPS_PATH, exc)
            return

        for entry in entries:
            # A malformed group only drops itself.
            try:
                group = ApiGroup.from_dict(entry)
            except ValueError as exc:
                name = entry.get("name", "") if isinstance(entry, dict) else ""
                self._record(errors, f"{GROUPS_PATH}#{name}", exc)
                continue
            for group_version in group.versions:
                tg.create_task(
                    self._fold_path(
                        cluster_version,
                        f"{GROUPS_PATH}/{group_version}",
                        group.preferred_version,
                        errors,
                        group_version=group_version,
                    )
                )

    async def _fold_path(
        self,
        cluster_version: str,
        path: str,
        preferred_group_version: str | None,
        errors: list[DiscoveryError],
        group_version: str = "",
    ) -> None:
        try:
            doc = await self._transport.get_json(path)
            response = DiscoveryResponse.from_dict(doc, preferred_version=preferred_group_version)
            self._cache.fold(cluster_version, response, preferred_group_version)
        except Exception as exc:  # noqa: BLE001
            self._record(errors, path, exc, group_version)

    @staticmethod
    def _record(errors: list[DiscoveryError], path: str, exc: Exception, group_version: str = "") -> None:
        err = DiscoveryError(path, exc, group_version=group_version)
        _log.warning(
            "discovery_fetch_failed",
            path=path,
            group_version=group_version,
            status_code=err.status_code,
            error=str(exc),
        )
        errors.append(err)

    async def resolve(self, resource_type: str, cluster_version: str | None = None) -> Found:
        """Resolve *resource_type* to its mapping, building the map on first use.

        Raises:
            ClusterVersionError:    if version detection fails.
            ResourceNotMappedError: if the resource is not served by the cluster.
        """
        if cluster_version is None:
            cluster_version = await self.cluster_version()

        result = self._cache.lookup(cluster_version, resource_type)
        if isinstance(result, UnknownCluster):
            await self.build(cluster_version)
            result = self._cache.lookup(cluster_version, resource_type)

        if isinstance(result, Found):
            return result

        available = list(result.resources) if isinstance(result, FallbackAll) else []
        raise ResourceNotMappedError(cluster_version, resource_type, available)
