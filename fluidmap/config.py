"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from fluidmap.models.config import (
    APIConfig,
    FluidMapConfig,
    KubeConfig,
    LogConfig,
    MapperConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"FLUIDMAP_{key}", default)


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


def validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def load_config() -> FluidMapConfig:
    """Load configuration from FLUIDMAP_* environment variables."""
    return FluidMapConfig(
        cluster_id=_env("CLUSTER_ID", ""),
        kube=KubeConfig(
            kubeconfig=_env("KUBECONFIG", ""),
            context=_env("KUBE_CONTEXT", ""),
            in_cluster=_env_bool("IN_CLUSTER", False),
        ),
        mapper=MapperConfig(
            timeout_seconds=_env_int("TIMEOUT", 30, min_val=1, max_val=300),
            include_pods=_env_bool("INCLUDE_PODS", True),
            include_configs=_env_bool("INCLUDE_CONFIGS", True),
            include_storage=_env_bool("INCLUDE_STORAGE", True),
        ),
        api=APIConfig(
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=validate_log_level(_env("LOG_LEVEL", "warning")),
        ),
    )
