"""Async HTTP transport to a cluster's API server.

Wraps one ``httpx.AsyncClient`` configured from a kubeconfig context: base
URL, CA verification, and the bearer token, basic credentials or client
certificate already present in the user entry.  Failed requests raise
:class:`ApiRequestError` carrying the HTTP status and the decoded response
body.
"""

from __future__ import annotations

import ssl
import tempfile
from pathlib import Path
from typing import Any

import httpx
import structlog

from kubemap.client.kubeconfig import ClusterContext
from kubemap.errors import ApiRequestError, KubeconfigError

_log = structlog.get_logger(component="client.transport")


def _load_client_cert(sslctx: ssl.SSLContext, ctx: ClusterContext) -> None:
    cert_data = ctx.client_cert_data
    cert_files = ctx.client_cert_files
    try:
        if cert_data is not None:
            # load_cert_chain only reads from files; the chain stays in memory afterwards.
            with tempfile.TemporaryDirectory(prefix="kubemap-") as tmp:
                cert_path = Path(tmp) / "client.crt"
                key_path = Path(tmp) / "client.key"
                cert_path.write_text(cert_data[0], encoding="utf-8")
                key_path.write_text(cert_data[1], encoding="utf-8")
                sslctx.load_cert_chain(cert_path, key_path)
        elif cert_files is not None:
            sslctx.load_cert_chain(*cert_files)
    except (OSError, ssl.SSLError) as exc:
        raise KubeconfigError(f"Cannot load client certificate for context '{ctx.name}': {exc}") from exc


def _ssl_verify(ctx: ClusterContext) -> ssl.SSLContext | bool:
    """Return httpx's ``verify`` argument: an SSL context, or a bare bool when no client certificate is set.

    Raises:
        KubeconfigError: if the CA or client certificate cannot be loaded.
    """
    has_client_cert = ctx.client_cert_data is not None or ctx.client_cert_files is not None
    ca_data = ctx.ca_data
    try:
        if ctx.insecure_skip_tls_verify:
            if not has_client_cert:
                return False
            sslctx = ssl.create_default_context()
            sslctx.check_hostname = False
            sslctx.verify_mode = ssl.CERT_NONE
        elif ca_data:
            sslctx = ssl.create_default_context(cadata=ca_data)
        elif ctx.ca_file:
            sslctx = ssl.create_default_context(cafile=ctx.ca_file)
        elif has_client_cert:
            sslctx = ssl.create_default_context()
        else:
            return True
    except (OSError, ssl.SSLError) as exc:
        raise KubeconfigError(f"Cannot load certificate authority for context '{ctx.name}': {exc}") from exc

    if has_client_cert:
        _load_client_cert(sslctx, ctx)
    return sslctx


def _error_from_response(response: httpx.Response) -> ApiRequestError:
    try:
        body: Any = response.json()
    except ValueError:
        body = response.text
    message = ""
    if isinstance(body, dict):
        message = str(body.get("message", ""))
    return ApiRequestError(
        status_code=response.status_code,
        message=message or response.reason_phrase or f"HTTP {response.status_code}",
        metadata=body,
    )


class KubeTransport:
    """Issues requests against one API server.

    Args:
        client: Preconfigured ``httpx.AsyncClient`` whose ``base_url`` is the
                API server.  Use :meth:`from_context` to build one from a
                kubeconfig.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def from_context(cls, ctx: ClusterContext, timeout: float = 20.0) -> KubeTransport:
        headers: dict[str, str] = {"Accept": "application/json"}
        auth: httpx.BasicAuth | None = None
        if ctx.token:
            headers["Authorization"] = f"Bearer {ctx.token}"
        elif ctx.basic_auth:
            auth = httpx.BasicAuth(*ctx.basic_auth)

        client = httpx.AsyncClient(
            base_url=ctx.server,
            headers=headers,
            auth=auth,
            verify=_ssl_verify(ctx),
            timeout=httpx.Timeout(timeout),
        )
        _log.debug("transport_created", server=ctx.server, context=ctx.name)
        return cls(client)

    @property
    def base_url(self) -> str:
        return str(self._client.base_url).rstrip("/")

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send one request and return the 2xx response.

        Raises:
            ApiRequestError: on a non-2xx status (with the status code), or
                             with status 500 when no response was received.
        """
        try:
            response = await self._client.request(
                method,
                "/" + path.lstrip("/"),
                json=json,
                headers=headers,
                params=params,
            )
        except httpx.HTTPError as exc:
            _log.warning("api_request_failed", method=method, path=path, error=str(exc))
            raise ApiRequestError(500, str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            err = _error_from_response(response)
            _log.debug("api_non_2xx_response", method=method, path=path, status_code=err.status_code)
            raise err
        return response

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET *path* and decode the JSON body."""
        response = await self.request("GET", path, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise ApiRequestError(response.status_code, f"Invalid JSON from {path}: {exc}") from exc

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> KubeTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
