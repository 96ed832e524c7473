"""Per-cluster-version API map: folding discovery documents and resolving resources.

The cache maps a ClusterVersionKey (e.g. ``"1.8"``) to a mapping from plural
resource name to :class:`ResourceMapping`.  Entries are created on the first
fold for a cluster version and refined in place by every later fold; nothing
is ever evicted.

Fold rules, per resource descriptor:

* sub-resources (``pods/log``) are skipped;
* an unmapped resource takes the response's group-version;
* a mapping already on the group's preferred version is never displaced;
* otherwise the new group-version replaces the old one only if its version
  token ranks strictly higher.
"""

from __future__ import annotations

import threading

import structlog

from kubemap.apimap.versions import compare_tokens, parse_version, split_group_version
from kubemap.models.apimap import (
    CompareResult,
    DiscoveryResponse,
    FallbackAll,
    Found,
    LookupResult,
    ResourceMapping,
    UnknownCluster,
)

_log = structlog.get_logger(component="apimap.cache")


class ApiMapCache:
    """Owned, thread-safe store of API maps keyed by cluster version.

    Folds for the same cluster version are serialised by a per-version lock;
    folds for different versions proceed independently.

    Args:
        rank_ga: Passed to the version comparator; see
                 :func:`kubemap.apimap.versions.compare_versions`.
    """

    def __init__(self, rank_ga: bool = True) -> None:
        self._rank_ga = rank_ga
        self._maps: dict[str, dict[str, ResourceMapping]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, cluster_version: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(cluster_version)
            if lock is None:
                lock = self._locks[cluster_version] = threading.Lock()
            return lock

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def fold(
        self,
        cluster_version: str,
        response: DiscoveryResponse,
        preferred_group_version: str | None = None,
    ) -> dict[str, ResourceMapping]:
        """Fold one discovery response into the map for *cluster_version*.

        Args:
            cluster_version:         Normalised cluster version key.
            response:                Resources served by one group-version.
            preferred_group_version: The owning group's preferred
                                     group-version.  Defaults to
                                     ``response.preferred_version``; ``None``
                                     for the core group.

        Returns:
            A snapshot of the cluster version's map after the fold.

        Raises:
            ParseError: if the response's group-version is malformed.  The
                        map is left untouched in that case.
        """
        if preferred_group_version is None:
            preferred_group_version = response.preferred_version
        new_token = parse_version(split_group_version(response.group_version)[1])

        with self._lock_for(cluster_version):
            api_map = self._maps.setdefault(cluster_version, {})
            added = replaced = 0
            for resource in response.resources:
                if resource.is_subresource:
                    continue

                current = api_map.get(resource.name)
                if current is None:
                    added += 1
                elif preferred_group_version and current.group_version == preferred_group_version:
                    continue
                else:
                    current_token = parse_version(split_group_version(current.group_version)[1])
                    if compare_tokens(new_token, current_token, rank_ga=self._rank_ga) != CompareResult.GREATER:
                        continue
                    replaced += 1
                    _log.debug(
                        "resource_mapping_replaced",
                        cluster_version=cluster_version,
                        resource=resource.name,
                        previous=current.group_version,
                        group_version=response.group_version,
                    )

                api_map[resource.name] = ResourceMapping(
                    group_version=response.group_version,
                    namespaced=resource.namespaced,
                )

            _log.debug(
                "api_group_folded",
                cluster_version=cluster_version,
                group_version=response.group_version,
                preferred=preferred_group_version,
                added=added,
                replaced=replaced,
            )
            return dict(api_map)

    # ------------------------------------------------------------------
    # Resolving
    # ------------------------------------------------------------------

    def lookup(self, cluster_version: str, resource_type: str) -> LookupResult:
        """Resolve *resource_type* (singular or plural, any case) for a cluster version.

        Returns:
            Found           -- exact name, or name + ``"s"``, is mapped.
            FallbackAll     -- the cluster version is known but the resource
                               is not; carries a copy of the whole map.
            UnknownCluster  -- nothing was ever folded for *cluster_version*.
        """
        if not cluster_version or not isinstance(cluster_version, str):
            return UnknownCluster(cluster_version=str(cluster_version or ""))
        if cluster_version not in self._maps:
            return UnknownCluster(cluster_version=cluster_version)

        with self._lock_for(cluster_version):
            api_map = self._maps.get(cluster_version)
            if api_map is None:
                return UnknownCluster(cluster_version=cluster_version)
            if resource_type and isinstance(resource_type, str):
                name = resource_type.lower()
                for candidate in (name, name + "s"):
                    mapping = api_map.get(candidate)
                    if mapping is not None:
                        return Found(mapping=mapping, resource=candidate)
            return FallbackAll(resources=dict(api_map))

    def resources(self, cluster_version: str) -> dict[str, ResourceMapping] | None:
        """Return a snapshot of the whole map for *cluster_version*, or None if unknown."""
        if cluster_version not in self._maps:
            return None
        with self._lock_for(cluster_version):
            api_map = self._maps.get(cluster_version)
            return None if api_map is None else dict(api_map)

    def known_versions(self) -> list[str]:
        return sorted(self._maps)

    def clear(self) -> None:
        """Drop every map.  Intended for tests; the cache never evicts on its own."""
        with self._registry_lock:
            self._maps.clear()
            self._locks.clear()

    def __contains__(self, cluster_version: object) -> bool:
        return cluster_version in self._maps

    def __len__(self) -> int:
        return len(self._maps)
