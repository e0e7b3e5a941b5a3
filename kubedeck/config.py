"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from kubedeck.models.config import (
    APIConfig,
    KubeConfig,
    KubeDeckConfig,
    LogConfig,
    StreamConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBEDECK_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_list(key: str, default: str) -> list[str]:
    return [item.strip() for item in _env(key, default).split(",") if item.strip()]


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_in_cluster(value: str) -> str:
    valid = {"auto", "true", "false"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid in-cluster mode: {value}. Must be one of {valid}")
    return value.lower()


def _validate_shell(value: str) -> str:
    if not value.strip():
        raise ValueError("Default shell must not be empty")
    return value.strip()


def _default_kubeconfig() -> str:
    return os.environ.get("KUBECONFIG", "") or os.path.join(os.path.expanduser("~"), ".kube", "config")


def load_config() -> KubeDeckConfig:
    """Load configuration from KUBEDECK_* environment variables."""
    return KubeDeckConfig(
        kube=KubeConfig(
            kubeconfig=_env("KUBECONFIG", "") or _default_kubeconfig(),
            context=_env("KUBE_CONTEXT", ""),
            in_cluster=_validate_in_cluster(_env("IN_CLUSTER", "auto")),
        ),
        stream=StreamConfig(
            default_shell=_validate_shell(_env("STREAM_DEFAULT_SHELL", "/bin/sh")),
            log_tail_lines=_env_int("STREAM_LOG_TAIL_LINES", 1000, min_val=1, max_val=100000),
        ),
        api=APIConfig(
            host=_env("API_HOST", "0.0.0.0"),
            port=_env_int("API_PORT", 3000, min_val=1024, max_val=65535),
            cors_origins=_env_list("API_CORS_ORIGINS", "*"),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
