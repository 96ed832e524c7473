"""Integration tests for DiscoveryService against a fake API server.

Tests cover: full map build, preferred-version resolution across groups,
partial failures collected alongside the map, fatal version detection,
and resolve-on-first-use.
"""

from __future__ import annotations

import httpx
import pytest

from kubemap.apimap.cache import ApiMapCache
from kubemap.apimap.discovery import DiscoveryService
from kubemap.client.transport import KubeTransport
from kubemap.errors import ApiRequestError, ClusterVersionError, DiscoveryError, ResourceNotMappedError
from kubemap.models.apimap import Found, ResourceMapping

from .conftest import BASE_URL, FakeApiServer

# ---------------------------------------------------------------------------
# Full build
# ---------------------------------------------------------------------------


class TestBuild:
    async def test_builds_map_for_normalised_version(self, discovery: DiscoveryService) -> None:
        result = await discovery.build()
        assert result.ok
        assert result.cluster_version == "1.8"
        assert result.resources == {
            "pods": ResourceMapping("v1", True),
            "services": ResourceMapping("v1", True),
            "nodes": ResourceMapping("v1", False),
            "namespaces": ResourceMapping("v1", False),
            "deployments": ResourceMapping("apps/v1", True),
            "statefulsets": ResourceMapping("apps/v1beta2", True),
            "ingresses": ResourceMapping("extensions/v1beta1", True),
            "jobs": ResourceMapping("batch/v1", True),
            "cronjobs": ResourceMapping("batch/v1beta1", True),
        }

    async def test_fetches_every_group_version(self, discovery: DiscoveryService, api_server: FakeApiServer) -> None:
        await discovery.build()
        assert sorted(api_server.paths()) == sorted(api_server.documents)

    async def test_subresources_never_mapped(self, discovery: DiscoveryService) -> None:
        result = await discovery.build()
        assert not any("/" in name for name in result.resources)

    async def test_explicit_cluster_version_skips_detection(
        self, discovery: DiscoveryService, api_server: FakeApiServer
    ) -> None:
        result = await discovery.build(cluster_version="1.8-custom")
        assert result.cluster_version == "1.8-custom"
        assert "/version" not in api_server.paths()
        assert "1.8-custom" in discovery.cache

    async def test_rebuild_is_stable(self, discovery: DiscoveryService) -> None:
        first = await discovery.build()
        second = await discovery.build()
        assert first.resources == second.resources

    async def test_to_dict_uses_discovery_field_names(self, discovery: DiscoveryService) -> None:
        result = await discovery.build()
        assert result.to_dict()["deployments"] == {"groupVersion": "apps/v1", "namespaced": True}


# ---------------------------------------------------------------------------
# Partial failures
# ---------------------------------------------------------------------------


class TestPartialFailure:
    async def test_failed_group_version_is_collected(
        self, discovery: DiscoveryService, api_server: FakeApiServer
    ) -> None:
        api_server.fail("/apis/batch/v1", status_code=503, message="unavailable")
        result = await discovery.build()

        assert not result.ok
        assert len(result.errors) == 1
        err = result.errors[0]
        assert isinstance(err, DiscoveryError)
        assert err.path == "/apis/batch/v1"
        assert err.group_version == "batch/v1"
        assert err.status_code == 503
        assert isinstance(err.cause, ApiRequestError)
        assert err.cause.message == "unavailable"

        # Everything else was still folded.
        assert result.resources["jobs"] == ResourceMapping("batch/v1beta1", True)
        assert result.resources["deployments"] == ResourceMapping("apps/v1", True)

    async def test_group_list_failure_keeps_core(self, discovery: DiscoveryService, api_server: FakeApiServer) -> None:
        api_server.fail("/apis")
        result = await discovery.build()
        assert [e.path for e in result.errors] == ["/apis"]
        assert set(result.resources) == {"pods", "services", "nodes", "namespaces"}

    async def test_core_failure_keeps_groups(self, discovery: DiscoveryService, api_server: FakeApiServer) -> None:
        api_server.fail("/api/v1", status_code=403, message="forbidden")
        result = await discovery.build()
        assert [e.status_code for e in result.errors] == [403]
        assert "pods" not in result.resources
        assert "deployments" in result.resources

    async def test_malformed_document_is_collected(
        self, discovery: DiscoveryService, api_server: FakeApiServer
    ) -> None:
        api_server.documents["/apis/extensions/v1beta1"] = {"kind": "APIResourceList"}
        api_server.documents["/apis/batch/v1beta1"] = {"groupVersion": "batch/latest", "resources": []}
        result = await discovery.build()
        assert [e.path for e in result.errors] == ["/apis/batch/v1beta1", "/apis/extensions/v1beta1"]
        assert "ingresses" not in result.resources
        assert result.resources["jobs"] == ResourceMapping("batch/v1", True)

    async def test_malformed_group_entry_only_drops_that_group(
        self, discovery: DiscoveryService, api_server: FakeApiServer
    ) -> None:
        groups = api_server.documents["/apis"]["groups"]
        groups.append({"name": "metrics.k8s.io", "versions": [{"version": "v1beta1"}]})
        groups.append({"name": "broken.example.com", "versions": [], "preferredVersion": "v1"})
        result = await discovery.build()

        assert [e.path for e in result.errors] == ["/apis#broken.example.com", "/apis#metrics.k8s.io"]
        assert all(isinstance(e.cause, ValueError) for e in result.errors)
        assert result.resources["deployments"] == ResourceMapping("apps/v1", True)
        assert result.resources["cronjobs"] == ResourceMapping("batch/v1beta1", True)
        assert "ingresses" in result.resources

    async def test_all_failures_are_reported(self, discovery: DiscoveryService, api_server: FakeApiServer) -> None:
        for path in ("/apis/apps/v1", "/apis/apps/v1beta1", "/apis/apps/v1beta2"):
            api_server.fail(path)
        result = await discovery.build()
        assert len(result.errors) == 3
        assert result.resources["deployments"] == ResourceMapping("extensions/v1beta1", True)


# ---------------------------------------------------------------------------
# Version detection
# ---------------------------------------------------------------------------


class TestClusterVersion:
    async def test_version_is_normalised(self, discovery: DiscoveryService) -> None:
        assert await discovery.cluster_version() == "1.8"

    async def test_precision_is_honoured(self, transport: KubeTransport, cache: ApiMapCache) -> None:
        service = DiscoveryService(transport, cache, precision=3)
        assert await service.cluster_version() == "1.8.3-gke"

    async def test_version_failure_is_fatal(self, discovery: DiscoveryService, api_server: FakeApiServer) -> None:
        api_server.fail("/version", status_code=401, message="Unauthorized")
        with pytest.raises(ClusterVersionError) as exc_info:
            await discovery.build()
        assert isinstance(exc_info.value.cause, ApiRequestError)
        assert exc_info.value.cause.status_code == 401
        assert api_server.paths() == ["/version"]

    async def test_version_without_git_version_is_fatal(
        self, discovery: DiscoveryService, api_server: FakeApiServer
    ) -> None:
        api_server.documents["/version"] = {"major": "1"}
        with pytest.raises(ClusterVersionError):
            await discovery.build()

    async def test_unreachable_server_is_fatal(self, cache: ApiMapCache) -> None:
        def _refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(_refuse))
        service = DiscoveryService(KubeTransport(client), cache)
        with pytest.raises(ClusterVersionError) as exc_info:
            await service.build()
        assert exc_info.value.cause.status_code == 500  # type: ignore[attr-defined]


# ---------------------------------------------------------------------------
# Resolve
# ---------------------------------------------------------------------------


class TestResolve:
    async def test_resolve_builds_on_first_use(self, discovery: DiscoveryService, api_server: FakeApiServer) -> None:
        found = await discovery.resolve("Deployment")
        assert isinstance(found, Found)
        assert found.resource == "deployments"
        assert found.mapping == ResourceMapping("apps/v1", True)
        assert "/apis" in api_server.paths()

    async def test_resolve_reuses_cached_map(self, discovery: DiscoveryService, api_server: FakeApiServer) -> None:
        await discovery.resolve("pod")
        fetched = len(api_server.paths())
        await discovery.resolve("cronjob")
        # Only the version is re-checked; no discovery fetches.
        assert api_server.paths()[fetched:] == ["/version"]

    async def test_unknown_resource_raises(self, discovery: DiscoveryService) -> None:
        with pytest.raises(ResourceNotMappedError) as exc_info:
            await discovery.resolve("widget")
        assert exc_info.value.cluster_version == "1.8"
        assert "pods" in exc_info.value.available

    async def test_services_share_cache_per_cluster_version(
        self, transport: KubeTransport, cache: ApiMapCache, api_server: FakeApiServer
    ) -> None:
        first = DiscoveryService(transport, cache)
        second = DiscoveryService(transport, cache)
        await first.build()
        fetched = len(api_server.paths())
        found = await second.resolve("ingresses", cluster_version="1.8")
        assert found.mapping.group_version == "extensions/v1beta1"
        assert len(api_server.paths()) == fetched
