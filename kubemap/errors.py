"""Exception hierarchy for kubemap.

Only version detection failures are fatal to a discovery build.  Per-fetch
failures are wrapped in :class:`DiscoveryError` and collected on the
:class:`~kubemap.models.apimap.DiscoveryResult` instead of being raised.
"""

from __future__ import annotations

from typing import Any


class KubeMapError(Exception):
    """Base class for every error raised by kubemap."""


class ParseError(KubeMapError, ValueError):
    """Raised when a version or group-version token does not match the grammar."""

    def __init__(self, token: object) -> None:
        super().__init__(f"Malformed API version token: {token!r}")
        self.token = token


class KubeconfigError(KubeMapError):
    """Raised when a kubeconfig has no usable current context."""


class ApiRequestError(KubeMapError):
    """A request to the cluster API server failed.

    Attributes:
        status_code: HTTP status of the response, or 500 when no response
                     was received at all.
        metadata:    Decoded response body, when one was returned.
    """

    def __init__(self, status_code: int, message: str, metadata: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.metadata = metadata

    def __str__(self) -> str:
        return f"{self.status_code}: {self.message}"


class ClusterVersionError(KubeMapError):
    """The cluster version could not be detected; the map cannot be built."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"Could not detect cluster version: {cause}")
        self.cause = cause


class DiscoveryError(KubeMapError):
    """Fetching or folding a single discovery document failed."""

    def __init__(self, path: str, cause: Exception, group_version: str = "") -> None:
        super().__init__(f"Discovery of '{path}' failed: {cause}")
        self.path = path
        self.group_version = group_version
        self.cause = cause

    @property
    def status_code(self) -> int:
        if isinstance(self.cause, ApiRequestError):
            return self.cause.status_code
        return 500


class ResourceNotMappedError(KubeMapError):
    """No API group could be resolved for a resource type."""

    def __init__(self, cluster_version: str, resource_type: str, available: list[str] | None = None) -> None:
        super().__init__(
            f"Could not get API group info for resource '{resource_type}' "
            f"in cluster with k8s version '{cluster_version}'"
        )
        self.cluster_version = cluster_version
        self.resource_type = resource_type
        self.available = sorted(available or [])
