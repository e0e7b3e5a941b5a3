"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class KubeConfig:
    """Kubernetes client configuration."""

    kubeconfig: str = ""
    context: str = ""
    in_cluster: str = "auto"  # "auto" | "true" | "false"


@dataclass
class StreamConfig:
    """Interactive stream defaults."""

    default_shell: str = "/bin/sh"
    log_tail_lines: int = 1000


@dataclass
class APIConfig:
    """REST API configuration."""

    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class KubeDeckConfig:
    """Top-level kubedeck configuration."""

    kube: KubeConfig = field(default_factory=KubeConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
