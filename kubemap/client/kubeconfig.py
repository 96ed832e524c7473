"""Kubeconfig loading and current-context extraction."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

from kubemap.errors import KubeconfigError

_log = structlog.get_logger(component="client.kubeconfig")


@dataclass(frozen=True)
class ClusterContext:
    """The context, cluster and user entries selected by a kubeconfig's current context.

    Each of ``context``, ``cluster`` and ``user`` is the full named entry,
    e.g. ``{"name": "prod", "cluster": {"server": ...}}``.  ``base_dir`` is the
    directory of the kubeconfig file; relative certificate paths resolve
    against it.
    """

    name: str
    context: dict[str, Any] = field(default_factory=dict)
    cluster: dict[str, Any] = field(default_factory=dict)
    user: dict[str, Any] = field(default_factory=dict)
    base_dir: str = ""

    @property
    def _cluster(self) -> dict[str, Any]:
        entry = self.cluster.get("cluster")
        return entry if isinstance(entry, dict) else {}

    @property
    def _user(self) -> dict[str, Any]:
        entry = self.user.get("user")
        return entry if isinstance(entry, dict) else {}

    def _decode(self, raw: Any, key: str) -> str | None:
        if not raw:
            return None
        try:
            return base64.b64decode(raw).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError, TypeError, ValueError) as exc:
            raise KubeconfigError(f"Invalid {key} for context '{self.name}'") from exc

    def _path(self, raw: Any) -> str | None:
        if not raw:
            return None
        path = Path(str(raw)).expanduser()
        if not path.is_absolute() and self.base_dir:
            path = Path(self.base_dir) / path
        return str(path)

    @property
    def server(self) -> str:
        return str(self._cluster.get("server", "")).rstrip("/")

    @property
    def ca_data(self) -> str | None:
        """PEM text decoded from ``certificate-authority-data``, if present."""
        return self._decode(self._cluster.get("certificate-authority-data"), "certificate-authority-data")

    @property
    def ca_file(self) -> str | None:
        return self._path(self._cluster.get("certificate-authority"))

    @property
    def insecure_skip_tls_verify(self) -> bool:
        return bool(self._cluster.get("insecure-skip-tls-verify", False))

    @property
    def token(self) -> str | None:
        return self._user.get("token") or None

    @property
    def basic_auth(self) -> tuple[str, str] | None:
        creds = self._user
        if creds.get("username") and creds.get("password"):
            return (str(creds["username"]), str(creds["password"]))
        return None

    @property
    def client_cert_data(self) -> tuple[str, str] | None:
        """PEM certificate and key decoded from ``client-certificate-data``/``client-key-data``."""
        cert = self._decode(self._user.get("client-certificate-data"), "client-certificate-data")
        key = self._decode(self._user.get("client-key-data"), "client-key-data")
        if cert and key:
            return (cert, key)
        return None

    @property
    def client_cert_files(self) -> tuple[str, str] | None:
        """Paths from ``client-certificate``/``client-key``, resolved against ``base_dir``."""
        cert = self._path(self._user.get("client-certificate"))
        key = self._path(self._user.get("client-key"))
        if cert and key:
            return (cert, key)
        return None


def _find_named(entries: Any, name: str) -> dict[str, Any] | None:
    if not isinstance(entries, list):
        return None
    for entry in entries:
        if isinstance(entry, dict) and entry.get("name") == name:
            return entry
    return None


def extract_current_context(
    kubeconfig: dict[str, Any],
    context: str | None = None,
    base_dir: str | Path = "",
) -> ClusterContext | None:
    """Resolve the context, cluster and user named by ``current-context``.

    Args:
        kubeconfig: Parsed kubeconfig document.
        context:    Context name overriding ``current-context``.
        base_dir:   Directory relative certificate paths resolve against,
                    normally the kubeconfig file's directory.

    Returns:
        The resolved entries, or None when the kubeconfig is not a mapping or
        any link (context, its cluster, its user) is missing.
    """
    if not isinstance(kubeconfig, dict):
        return None

    context_name = context or kubeconfig.get("current-context")
    if not context_name:
        return None

    ctx = _find_named(kubeconfig.get("contexts"), context_name)
    if ctx is None or not isinstance(ctx.get("context"), dict):
        return None

    cluster = _find_named(kubeconfig.get("clusters"), ctx["context"].get("cluster", ""))
    if cluster is None:
        return None

    user = _find_named(kubeconfig.get("users"), ctx["context"].get("user", ""))
    if user is None:
        return None

    return ClusterContext(
        name=context_name,
        context=ctx,
        cluster=cluster,
        user=user,
        base_dir=str(base_dir) if base_dir else "",
    )


def load_kubeconfig(path: str | Path) -> dict[str, Any]:
    """Read and parse the kubeconfig YAML file at *path* (``~`` is expanded).

    Raises:
        KubeconfigError: if the file cannot be read or is not a YAML mapping.
    """
    kubeconfig_path = Path(path).expanduser()
    try:
        with kubeconfig_path.open(encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as exc:
        raise KubeconfigError(f"Cannot read kubeconfig '{kubeconfig_path}': {exc}") from exc
    except yaml.YAMLError as exc:
        raise KubeconfigError(f"Kubeconfig '{kubeconfig_path}' is not valid YAML: {exc}") from exc

    if not isinstance(data, dict):
        raise KubeconfigError(f"Kubeconfig '{kubeconfig_path}' is not a mapping")
    _log.debug("kubeconfig_loaded", path=str(kubeconfig_path), current_context=data.get("current-context"))
    return data


def require_context(
    kubeconfig: dict[str, Any],
    context: str | None = None,
    base_dir: str | Path = "",
) -> ClusterContext:
    """Like :func:`extract_current_context` but raise when nothing resolves."""
    resolved = extract_current_context(kubeconfig, context, base_dir)
    if resolved is None:
        raise KubeconfigError(f"No usable context {context or 'current-context'!r} in kubeconfig")
    if not resolved.server:
        raise KubeconfigError(f"Cluster of context '{resolved.name}' has no server")
    return resolved
