"""Cluster overview records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kubedeck.models.resources import MetricsSample


@dataclass(frozen=True)
class KubeconfigCluster:
    """A cluster entry from the active kubeconfig."""

    name: str
    server: str | None = None


@dataclass(frozen=True)
class KubeconfigInfo:
    """What the client knows about its kubeconfig (or in-cluster identity)."""

    origin: str
    current_context: str | None
    current_cluster: str | None
    clusters: list[KubeconfigCluster] = field(default_factory=list)


@dataclass(frozen=True)
class ClusterVersion:
    """Server version as reported by ``/version``."""

    major: str = "Unknown"
    minor: str = "Unknown"
    git_version: str = "Not connected"
    git_commit: str = "N/A"
    git_tree_state: str = "N/A"
    build_date: str = "N/A"
    go_version: str = "N/A"
    compiler: str = "N/A"
    platform: str = "N/A"

    def to_dict(self) -> dict[str, str]:
        return {
            "major": self.major,
            "minor": self.minor,
            "gitVersion": self.git_version,
            "gitCommit": self.git_commit,
            "gitTreeState": self.git_tree_state,
            "buildDate": self.build_date,
            "goVersion": self.go_version,
            "compiler": self.compiler,
            "platform": self.platform,
        }


@dataclass(frozen=True)
class ClusterStats:
    """Object counts for one cluster."""

    total_nodes: int = 0
    total_namespaces: int = 0
    total_pods: int = 0
    ready_nodes: int = 0
    running_pods: int = 0
    pending_pods: int = 0
    failed_pods: int = 0
    succeeded_pods: int = 0
    unknown_pods: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "totalNodes": self.total_nodes,
            "totalNamespaces": self.total_namespaces,
            "totalPods": self.total_pods,
            "readyNodes": self.ready_nodes,
            "runningPods": self.running_pods,
            "pendingPods": self.pending_pods,
            "failedPods": self.failed_pods,
            "succeededPods": self.succeeded_pods,
            "unknownPods": self.unknown_pods,
        }


@dataclass(frozen=True)
class CapacityTotals:
    """Summed node capacity."""

    millicores: int = 0
    bytes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "cpu": {"millicores": self.millicores, "cores": round(self.millicores / 1000, 2)},
            "memory": {
                "bytes": self.bytes,
                "megabytes": round(self.bytes / (1024 * 1024), 2),
                "gigabytes": round(self.bytes / (1024 * 1024 * 1024), 2),
            },
        }


@dataclass(frozen=True)
class ClusterMetrics:
    """Summed node usage, summed capacity and pod total for one cluster.

    ``usage`` is a MetricsSample keyed by the cluster name; zeroed samples are
    used for clusters that are not connected or when metrics are unavailable.
    """

    usage: MetricsSample
    capacity: CapacityTotals
    total_pods: int

    def to_dict(self) -> dict[str, Any]:
        sample = self.usage.to_dict()
        return {
            "timestamp": sample["timestamp"],
            "window": sample["window"],
            "usage": sample["usage"],
            "capacity": self.capacity.to_dict(),
            "totalPods": self.total_pods,
        }


@dataclass(frozen=True)
class ClusterRecord:
    """One entry of the clusters overview."""

    name: str
    server: str | None
    origin: str
    is_current: bool
    context: str | None
    version: ClusterVersion
    stats: ClusterStats
    metrics: ClusterMetrics
    namespaces: list[dict[str, Any]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "server": self.server,
            "origin": self.origin,
            "isCurrent": self.is_current,
            "context": self.context,
            "version": self.version.to_dict(),
            "stats": self.stats.to_dict(),
            "metrics": self.metrics.to_dict(),
            "namespaces": self.namespaces,
        }
