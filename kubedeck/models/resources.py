"""Enriched resource records and the metrics/phase-count structures they carry.

Records are built by ``kubedeck.aggregation.transform`` and serialised with
``to_dict()``, which produces the camelCase JSON shape served by the REST API.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from enum import StrEnum
from typing import Any


class ResourceKind(StrEnum):
    """Resource kinds the cluster client knows how to list and read."""

    POD = "Pod"
    NODE = "Node"
    NAMESPACE = "Namespace"
    DEPLOYMENT = "Deployment"
    SERVICE = "Service"
    INGRESS = "Ingress"


class PodPhase(StrEnum):
    """Pod lifecycle phases as reported in ``status.phase``."""

    RUNNING = "Running"
    PENDING = "Pending"
    FAILED = "Failed"
    SUCCEEDED = "Succeeded"
    UNKNOWN = "Unknown"


# Raw API objects are plain JSON-shaped dicts with camelCase keys.
RawResource = Mapping[str, Any]


@dataclass(frozen=True)
class CpuUsage:
    """CPU quantity in its original string form plus normalised numbers."""

    raw: str
    millicores: int
    cores: float


@dataclass(frozen=True)
class MemoryUsage:
    """Memory quantity in its original string form plus normalised numbers."""

    raw: str
    bytes: int
    megabytes: float
    gigabytes: float


@dataclass(frozen=True)
class MetricsSample:
    """One live usage sample for a node or a pod.

    ``resource_key`` is ``namespace/name`` for pods and the bare name for nodes.
    """

    resource_key: str
    timestamp: str | None
    window: str | None
    cpu: CpuUsage
    memory: MemoryUsage

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "window": self.window,
            "usage": {"cpu": asdict(self.cpu), "memory": asdict(self.memory)},
        }


# Join index built once per service call; a missing key means "no metrics".
MetricsMap = Mapping[str, MetricsSample]


@dataclass
class PhaseCounts:
    """Pod phase histogram for one node or one namespace.

    Phases other than the four tracked ones only increment ``total``.
    """

    total: int = 0
    running: int = 0
    pending: int = 0
    failed: int = 0
    succeeded: int = 0

    def record(self, phase: str | None) -> None:
        self.total += 1
        if phase == PodPhase.RUNNING:
            self.running += 1
        elif phase == PodPhase.PENDING:
            self.pending += 1
        elif phase == PodPhase.FAILED:
            self.failed += 1
        elif phase == PodPhase.SUCCEEDED:
            self.succeeded += 1

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class ResourceAmounts:
    """cpu/memory request or limit strings, ``"0"`` when not declared."""

    cpu: str = "0"
    memory: str = "0"


@dataclass(frozen=True)
class PodRecord:
    """Canonical enriched view of a pod."""

    name: str
    namespace: str
    phase: str
    ready: bool
    conditions: list[dict[str, Any]]
    node_name: str | None
    restart_policy: str | None
    service_account: str | None
    pod_ip: str | None
    host_ip: str | None
    ports: list[dict[str, Any]]
    containers: list[dict[str, Any]]
    requests: ResourceAmounts
    limits: ResourceAmounts
    metrics: MetricsSample | None
    creation_timestamp: str | None
    labels: dict[str, str] | None
    annotations: dict[str, str] | None
    owner_references: list[dict[str, Any]] | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "status": {
                "phase": self.phase,
                "ready": self.ready,
                "conditions": self.conditions,
            },
            "spec": {
                "nodeName": self.node_name,
                "restartPolicy": self.restart_policy,
                "serviceAccount": self.service_account,
            },
            "network": {
                "podIP": self.pod_ip,
                "hostIP": self.host_ip,
                "ports": self.ports,
            },
            "containers": self.containers,
            "resources": {
                "requests": asdict(self.requests),
                "limits": asdict(self.limits),
            },
            "metrics": self.metrics.to_dict() if self.metrics is not None else None,
            "creationTimestamp": self.creation_timestamp,
            "labels": self.labels,
            "annotations": self.annotations,
            "ownerReferences": self.owner_references,
        }


@dataclass(frozen=True)
class NodeRecord:
    """Canonical enriched view of a node."""

    name: str
    status: str | None  # status of the Ready condition ("True"/"False"/"Unknown")
    roles: list[str]
    os: str | None
    kernel_version: str | None
    kubelet_version: str | None
    container_runtime: str | None
    addresses: list[dict[str, Any]] | None
    capacity: dict[str, str] | None
    allocatable: dict[str, str] | None
    pods: PhaseCounts
    creation_timestamp: str | None
    labels: dict[str, str] | None
    annotations: dict[str, str] | None
    metrics: MetricsSample | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "roles": self.roles,
            "os": self.os,
            "kernelVersion": self.kernel_version,
            "kubeletVersion": self.kubelet_version,
            "containerRuntime": self.container_runtime,
            "addresses": self.addresses,
            "capacity": self.capacity,
            "allocatable": self.allocatable,
            "pods": self.pods.to_dict(),
            "creationTimestamp": self.creation_timestamp,
            "labels": self.labels,
            "annotations": self.annotations,
            "metrics": self.metrics.to_dict() if self.metrics is not None else None,
        }


@dataclass(frozen=True)
class NamespaceRecord:
    """Canonical enriched view of a namespace."""

    name: str
    status: str
    creation_timestamp: str | None
    labels: dict[str, str]
    annotations: dict[str, str]
    pods: PhaseCounts
    uid: str | None
    resource_version: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "creationTimestamp": self.creation_timestamp,
            "labels": self.labels,
            "annotations": self.annotations,
            "pods": self.pods.to_dict(),
            "uid": self.uid,
            "resourceVersion": self.resource_version,
        }


@dataclass(frozen=True)
class ReplicaCounts:
    """Deployment replica status counters."""

    desired: int = 0
    ready: int = 0
    available: int = 0
    updated: int = 0
    unavailable: int = 0


@dataclass(frozen=True)
class DeploymentRecord:
    """Flattened view of a deployment."""

    name: str
    namespace: str
    replicas: ReplicaCounts
    strategy: str | None
    selector: dict[str, str]
    images: list[str]
    conditions: list[dict[str, Any]]
    creation_timestamp: str | None
    labels: dict[str, str] | None
    annotations: dict[str, str] | None
    restarted_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "replicas": asdict(self.replicas),
            "strategy": self.strategy,
            "selector": self.selector,
            "images": self.images,
            "conditions": self.conditions,
            "creationTimestamp": self.creation_timestamp,
            "labels": self.labels,
            "annotations": self.annotations,
            "restartedAt": self.restarted_at,
        }
