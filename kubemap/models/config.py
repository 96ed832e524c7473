"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ClientConfig:
    """Cluster connection configuration."""

    kubeconfig: str = "~/.kube/config"
    context: str = ""
    default_namespace: str = "default"
    request_timeout: float = 20.0


@dataclass
class DiscoveryConfig:
    """API discovery and version resolution configuration."""

    version_precision: int = 2
    rank_ga: bool = True


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class KubeMapConfig:
    """Top-level kubemap configuration."""

    client: ClientConfig = field(default_factory=ClientConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    log: LogConfig = field(default_factory=LogConfig)
