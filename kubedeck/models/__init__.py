"""Core data structures for kubedeck."""

from kubedeck.models.cluster import (
    CapacityTotals,
    ClusterMetrics,
    ClusterRecord,
    ClusterStats,
    ClusterVersion,
    KubeconfigCluster,
    KubeconfigInfo,
)
from kubedeck.models.config import KubeDeckConfig
from kubedeck.models.resources import (
    CpuUsage,
    DeploymentRecord,
    MemoryUsage,
    MetricsMap,
    MetricsSample,
    NamespaceRecord,
    NodeRecord,
    PhaseCounts,
    PodPhase,
    PodRecord,
    RawResource,
    ReplicaCounts,
    ResourceAmounts,
    ResourceKind,
)

__all__ = [
    "CapacityTotals",
    "ClusterMetrics",
    "ClusterRecord",
    "ClusterStats",
    "ClusterVersion",
    "CpuUsage",
    "DeploymentRecord",
    "KubeDeckConfig",
    "KubeconfigCluster",
    "KubeconfigInfo",
    "MemoryUsage",
    "MetricsMap",
    "MetricsSample",
    "NamespaceRecord",
    "NodeRecord",
    "PhaseCounts",
    "PodPhase",
    "PodRecord",
    "RawResource",
    "ReplicaCounts",
    "ResourceAmounts",
    "ResourceKind",
]
