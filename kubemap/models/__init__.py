"""Core data structures for kubemap."""

from kubemap.models.apimap import (
    ApiGroup,
    CompareResult,
    DiscoveryResponse,
    DiscoveryResult,
    FallbackAll,
    Found,
    LookupOutcome,
    LookupResult,
    ResourceDescriptor,
    ResourceMapping,
    UnknownCluster,
    VersionToken,
)
from kubemap.models.config import KubeMapConfig

__all__ = [
    "ApiGroup",
    "CompareResult",
    "DiscoveryResponse",
    "DiscoveryResult",
    "FallbackAll",
    "Found",
    "KubeMapConfig",
    "LookupOutcome",
    "LookupResult",
    "ResourceDescriptor",
    "ResourceMapping",
    "UnknownCluster",
    "VersionToken",
]
