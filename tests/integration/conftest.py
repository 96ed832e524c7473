"""Shared fixtures for kubemap integration tests.

Provides a fake API server (an ``httpx.MockTransport`` serving canned
discovery documents) so discovery and client pipelines run end to end
without a real cluster.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from kubemap.apimap.cache import ApiMapCache
from kubemap.apimap.discovery import DiscoveryService
from kubemap.client.requests import KubeClient
from kubemap.client.transport import KubeTransport

BASE_URL = "https://k8s.test:6443"

# ---------------------------------------------------------------------------
# Discovery documents
# ---------------------------------------------------------------------------


def _resources(group_version: str, *entries: tuple[str, bool]) -> dict[str, Any]:
    return {
        "kind": "APIResourceList",
        "groupVersion": group_version,
        "resources": [{"name": name, "namespaced": namespaced, "kind": ""} for name, namespaced in entries],
    }


def _group(name: str, preferred: str, *versions: str) -> dict[str, Any]:
    return {
        "name": name,
        "versions": [{"groupVersion": f"{name}/{v}", "version": v} for v in versions],
        "preferredVersion": {"groupVersion": f"{name}/{preferred}", "version": preferred},
    }


def discovery_documents() -> dict[str, Any]:
    """Discovery documents of a small 1.8 cluster, keyed by request path."""
    return {
        "/version": {"major": "1", "minor": "8", "gitVersion": "v1.8.3-gke.2"},
        "/api/v1": _resources(
            "v1",
            ("pods", True),
            ("pods/log", True),
            ("pods/status", True),
            ("services", True),
            ("nodes", False),
            ("namespaces", False),
        ),
        "/apis": {
            "kind": "APIGroupList",
            "groups": [
                _group("apps", "v1", "v1", "v1beta2", "v1beta1"),
                _group("extensions", "v1beta1", "v1beta1"),
                _group("batch", "v1", "v1", "v1beta1"),
            ],
        },
        "/apis/apps/v1": _resources("apps/v1", ("deployments", True), ("deployments/scale", True)),
        "/apis/apps/v1beta2": _resources("apps/v1beta2", ("deployments", True), ("statefulsets", True)),
        "/apis/apps/v1beta1": _resources("apps/v1beta1", ("deployments", True), ("statefulsets", True)),
        "/apis/extensions/v1beta1": _resources("extensions/v1beta1", ("deployments", True), ("ingresses", True)),
        "/apis/batch/v1": _resources("batch/v1", ("jobs", True)),
        "/apis/batch/v1beta1": _resources("batch/v1beta1", ("jobs", True), ("cronjobs", True)),
    }


# ---------------------------------------------------------------------------
# Fake API server
# ---------------------------------------------------------------------------


Handler = Callable[[httpx.Request], httpx.Response]


class FakeApiServer:
    """Serves canned JSON per path; records every request it receives.

    ``overrides`` maps ``(method, path)`` to a handler returning a response,
    used for failures and non-GET verbs.
    """

    def __init__(self, documents: dict[str, Any] | None = None) -> None:
        self.documents = documents if documents is not None else discovery_documents()
        self.overrides: dict[tuple[str, str], Handler] = {}
        self.requests: list[httpx.Request] = []

    def fail(self, path: str, status_code: int = 500, message: str = "boom") -> None:
        self.overrides[("GET", path)] = lambda _req: httpx.Response(
            status_code, json={"kind": "Status", "message": message, "code": status_code}
        )

    def paths(self, method: str = "GET") -> list[str]:
        return [r.url.path for r in self.requests if r.method == method]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        override = self.overrides.get((request.method, request.url.path))
        if override is not None:
            return override(request)
        if request.method == "GET" and request.url.path in self.documents:
            return httpx.Response(200, json=self.documents[request.url.path])
        return httpx.Response(404, json={"kind": "Status", "message": "the server could not find the requested resource"})


@pytest.fixture
def api_server() -> FakeApiServer:
    return FakeApiServer()


@pytest.fixture
def transport(api_server: FakeApiServer) -> KubeTransport:
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(api_server))
    return KubeTransport(client)


@pytest.fixture
def cache() -> ApiMapCache:
    return ApiMapCache()


@pytest.fixture
def discovery(transport: KubeTransport, cache: ApiMapCache) -> DiscoveryService:
    return DiscoveryService(transport, cache, precision=2)


@pytest.fixture
def kube_client(transport: KubeTransport, discovery: DiscoveryService) -> KubeClient:
    return KubeClient(transport, discovery, default_namespace="default")
