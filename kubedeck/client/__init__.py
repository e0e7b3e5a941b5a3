"""Kubernetes API access.

Exposes:
    ClusterClient            -- abstract interface consumed by services and streams.
    KubernetesClusterClient  -- kubernetes-asyncio implementation, in kubedeck.client.kube.
"""

from kubedeck.client.base import (
    ClusterClient,
    ExecChannel,
    ExecEvent,
    ExecStream,
    LogChannel,
    LogOptions,
    MetricsKind,
)

__all__ = [
    "ClusterClient",
    "ExecChannel",
    "ExecEvent",
    "ExecStream",
    "LogChannel",
    "LogOptions",
    "MetricsKind",
]
