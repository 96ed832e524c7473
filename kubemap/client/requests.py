"""Request paths and verbs for discovered resources.

Paths follow the API server layout::

    /api/v1/[namespaces/<ns>/]<resource>[/<name>[/<subresource>]]
    /apis/<group>/<version>/[namespaces/<ns>/]<resource>[/<name>[/<subresource>]]

The namespace segment is inserted only for namespaced resources, and left
out when the caller asks for ``"all"`` namespaces.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog

from kubemap.apimap.cache import ApiMapCache
from kubemap.apimap.discovery import DiscoveryService
from kubemap.client.kubeconfig import require_context
from kubemap.client.secrets import build_tls_secret
from kubemap.client.transport import KubeTransport
from kubemap.errors import ApiRequestError
from kubemap.models.apimap import ResourceMapping
from kubemap.models.config import ClientConfig

_log = structlog.get_logger(component="client.requests")

ALL_NAMESPACES = "all"
_MERGE_PATCH = {"Content-Type": "application/merge-patch+json"}


def resource_path(
    mapping: ResourceMapping,
    resource: str,
    namespace: str | None = None,
    name: str | None = None,
    default_namespace: str = "default",
    subresource: str | None = None,
) -> str:
    """Build the request path for *resource* served at *mapping*.

    Args:
        mapping:           Resolved group-version and scope.
        resource:          Plural resource name as served by discovery.
        namespace:         Target namespace; falsy uses *default_namespace*,
                           ``"all"`` omits the namespace segment.  Ignored
                           for cluster-scoped resources.
        name:              Optional object name.
        default_namespace: Namespace used when *namespace* is falsy.
        subresource:       Optional sub-resource of the named object (``log``).
    """
    parts = ["/api" if mapping.is_core else "/apis", mapping.group_version]
    if mapping.namespaced and namespace != ALL_NAMESPACES:
        parts += ["namespaces", namespace or default_namespace]
    parts.append(resource)
    if name:
        parts.append(name)
        if subresource:
            parts.append(subresource)
    return "/".join(parts)


class KubeClient:
    """Resource-level verbs on top of the discovered API map.

    Args:
        transport:         Transport to the API server.
        discovery:         Discovery service resolving resource types.
        default_namespace: Namespace used when a namespaced resource is
                           addressed without one.
    """

    def __init__(
        self,
        transport: KubeTransport,
        discovery: DiscoveryService,
        default_namespace: str = "default",
    ) -> None:
        self._transport = transport
        self._discovery = discovery
        self._default_namespace = default_namespace

    @classmethod
    def from_kubeconfig(
        cls,
        kubeconfig: dict[str, Any],
        cache: ApiMapCache,
        config: ClientConfig | None = None,
        precision: int = 2,
        base_dir: str | Path = "",
    ) -> KubeClient:
        """Build a client for the kubeconfig's current (or configured) context.

        *base_dir* is the kubeconfig file's directory, used for relative
        certificate paths.
        """
        config = config or ClientConfig()
        ctx = require_context(kubeconfig, config.context or None, base_dir)
        transport = KubeTransport.from_context(ctx, timeout=config.request_timeout)
        discovery = DiscoveryService(transport, cache, precision=precision)
        return cls(transport, discovery, default_namespace=config.default_namespace)

    @property
    def discovery(self) -> DiscoveryService:
        return self._discovery

    @property
    def default_namespace(self) -> str:
        return self._default_namespace

    def change_default_namespace(self, namespace: str) -> None:
        """Use *namespace* for namespaced requests that do not name one."""
        if namespace and isinstance(namespace, str):
            self._default_namespace = namespace

    async def build_path(
        self,
        resource_type: str,
        namespace: str | None = None,
        name: str | None = None,
        subresource: str | None = None,
    ) -> str:
        """Resolve *resource_type* and return its request path."""
        found = await self._discovery.resolve(resource_type)
        return resource_path(
            found.mapping,
            found.resource,
            namespace=namespace,
            name=name,
            default_namespace=self._default_namespace,
            subresource=subresource,
        )

    async def get(
        self,
        resource_type: str,
        namespace: str | None = None,
        name: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        path = await self.build_path(resource_type, namespace, name)
        return await self._transport.get_json(path, params=params)

    async def delete(
        self,
        resource_type: str,
        namespace: str | None = None,
        name: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        path = await self.build_path(resource_type, namespace, name)
        response = await self._transport.request("DELETE", path, params=params)
        _log.info("resource_deleted", path=path)
        return response.json() if response.content else None

    async def logs(
        self,
        name: str,
        namespace: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> str:
        """Return the log text of pod *name* (``container``, ``tailLines`` etc. via *params*)."""
        path = await self.build_path("pod", namespace, name, subresource="log")
        response = await self._transport.request("GET", path, params=params)
        return response.text

    async def update_or_create(self, spec: dict[str, Any]) -> Any:
        """Merge-patch the object described by *spec*, creating it when absent.

        Raises:
            ValueError:      if *spec* lacks ``kind`` or ``metadata.name``.
            ApiRequestError: for any failure other than the initial 404.
        """
        kind = spec.get("kind")
        metadata = spec.get("metadata") or {}
        if not kind or not metadata.get("name"):
            raise ValueError("Resource spec needs 'kind' and 'metadata.name'")

        namespace = metadata.get("namespace")
        item_path = await self.build_path(kind, namespace, metadata["name"])
        try:
            response = await self._transport.request("PATCH", item_path, json=spec, headers=_MERGE_PATCH)
            _log.info("resource_patched", path=item_path)
        except ApiRequestError as exc:
            if exc.status_code != 404:
                raise
            collection_path = await self.build_path(kind, namespace)
            response = await self._transport.request("POST", collection_path, json=spec)
            _log.info("resource_created", path=collection_path)
        return response.json()

    def build_tls_secret(self, name: str, namespace: str | None, tls_key: str, tls_cert: str) -> dict[str, object]:
        """TLS Secret manifest; a missing *namespace* uses this client's default namespace."""
        return build_tls_secret(name, namespace, tls_key, tls_cert, default_namespace=self._default_namespace)

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> KubeClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
