"""Builders for Secret manifests."""

from __future__ import annotations

import base64
import json


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def build_docker_secret(
    name: str,
    namespace: str | None,
    registry: str,
    username: str,
    password: str,
) -> dict[str, object]:
    """Build a ``kubernetes.io/dockerconfigjson`` Secret for one registry."""
    auths = {"auths": {registry: {"auth": _b64(f"{username}:{password}")}}}
    return {
        "kind": "Secret",
        "metadata": {"name": name, "namespace": namespace or "default"},
        "data": {".dockerconfigjson": _b64(json.dumps(auths, separators=(",", ":")))},
        "type": "kubernetes.io/dockerconfigjson",
    }


def build_generic_secret(name: str, namespace: str | None, data: dict[str, str]) -> dict[str, object]:
    """Build an ``Opaque`` Secret; *data* values must already be base64-encoded."""
    return {
        "kind": "Secret",
        "metadata": {"name": name, "namespace": namespace},
        "data": dict(data),
        "type": "Opaque",
    }


def build_tls_secret(
    name: str,
    namespace: str | None,
    tls_key: str,
    tls_cert: str,
    default_namespace: str = "default",
) -> dict[str, object]:
    """Build a ``kubernetes.io/tls`` Secret from base64-encoded key and certificate."""
    return {
        "kind": "Secret",
        "metadata": {"name": name, "namespace": namespace or default_namespace},
        "type": "kubernetes.io/tls",
        "data": {"tls.crt": tls_cert, "tls.key": tls_key},
    }
