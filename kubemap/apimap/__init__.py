"""API map layer for kubemap.

Resolves which group-version serves a resource on a given cluster version.

Submodules:
    versions   -- API version token parsing and ordering.
    cache      -- ApiMapCache: per-cluster-version fold and lookup.
    discovery  -- DiscoveryService: concurrent fetch of every group-version.
"""

from kubemap.apimap.cache import ApiMapCache
from kubemap.apimap.discovery import DiscoveryService
from kubemap.apimap.versions import compare_versions, parse_version, split_group_version

__all__ = [
    "ApiMapCache",
    "DiscoveryService",
    "compare_versions",
    "parse_version",
    "split_group_version",
]
