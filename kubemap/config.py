"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from kubemap.models.config import ClientConfig, DiscoveryConfig, KubeMapConfig, LogConfig


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBEMAP_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None) -> float:
    val = float(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    return val


def _validate_namespace(value: str) -> str:
    if not value or value == "all":
        raise ValueError(f"Invalid default namespace: {value!r}")
    return value


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def load_config() -> KubeMapConfig:
    """Load configuration from KUBEMAP_* environment variables."""
    return KubeMapConfig(
        client=ClientConfig(
            kubeconfig=_env("KUBECONFIG", "~/.kube/config"),
            context=_env("CONTEXT", ""),
            default_namespace=_validate_namespace(_env("DEFAULT_NAMESPACE", "default")),
            request_timeout=_env_float("REQUEST_TIMEOUT", 20.0, min_val=1.0),
        ),
        discovery=DiscoveryConfig(
            version_precision=_env_int("VERSION_PRECISION", 2, min_val=1, max_val=3),
            rank_ga=_env_bool("RANK_GA", True),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
