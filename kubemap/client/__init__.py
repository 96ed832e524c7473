"""Cluster client layer for kubemap.

Submodules:
    kubeconfig -- kubeconfig loading and current-context extraction.
    transport  -- KubeTransport: httpx-based requests to the API server.
    version    -- cluster version detection and normalisation.
    requests   -- request paths and resource verbs (KubeClient).
    secrets    -- Secret manifest builders.

``requests`` is not re-exported here: it depends on ``kubemap.apimap``,
which itself imports the transport from this package.
"""

from kubemap.client.kubeconfig import ClusterContext, extract_current_context, load_kubeconfig
from kubemap.client.transport import KubeTransport
from kubemap.client.version import prettify_version

__all__ = [
    "ClusterContext",
    "KubeTransport",
    "extract_current_context",
    "load_kubeconfig",
    "prettify_version",
]
