"""Cluster overview: the live cluster plus kubeconfig placeholders.

Only the cluster the client is connected to is queried.  Every other
cluster in the kubeconfig is reported with "Not connected" version info
and zeroed stats and metrics.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import structlog

from kubedeck.aggregation.metrics import samples_from_listing
from kubedeck.aggregation.units import cpu_from_nanocores, cpu_nanocores, memory_bytes, memory_from_bytes
from kubedeck.client.base import ClusterClient, MetricsKind
from kubedeck.errors import ResourceNotFoundError
from kubedeck.models.cluster import (
    CapacityTotals,
    ClusterMetrics,
    ClusterRecord,
    ClusterStats,
    ClusterVersion,
    KubeconfigCluster,
)
from kubedeck.models.resources import MetricsSample, PodPhase, ResourceKind
from kubedeck.services.base import best_effort, require_items, require_name, utc_now_iso

_log = structlog.get_logger(component="services.clusters")

_DEFAULT_CLUSTER_NAME = "default"


def zeroed_metrics(name: str) -> ClusterMetrics:
    """Metrics block for clusters that are not connected or have no metrics."""
    return ClusterMetrics(
        usage=MetricsSample(
            resource_key=name,
            timestamp=utc_now_iso(),
            window="0s",
            cpu=cpu_from_nanocores(0, "0n"),
            memory=memory_from_bytes(0, "0Ki"),
        ),
        capacity=CapacityTotals(),
        total_pods=0,
    )


def cluster_stats(
    nodes: list[Mapping[str, Any]],
    namespaces: list[Mapping[str, Any]],
    pods: list[Mapping[str, Any]],
) -> ClusterStats:
    phases = [(pod.get("status") or {}).get("phase") for pod in pods]
    ready_nodes = sum(
        1
        for node in nodes
        if any(
            c.get("type") == "Ready" and c.get("status") == "True"
            for c in (node.get("status") or {}).get("conditions") or []
        )
    )
    return ClusterStats(
        total_nodes=len(nodes),
        total_namespaces=len(namespaces),
        total_pods=len(pods),
        ready_nodes=ready_nodes,
        running_pods=phases.count(PodPhase.RUNNING),
        pending_pods=phases.count(PodPhase.PENDING),
        failed_pods=phases.count(PodPhase.FAILED),
        succeeded_pods=phases.count(PodPhase.SUCCEEDED),
        unknown_pods=phases.count(PodPhase.UNKNOWN),
    )


def capacity_totals(nodes: list[Mapping[str, Any]]) -> CapacityTotals:
    """Sum ``status.capacity`` cpu (as millicores) and memory (as bytes) over nodes."""
    nanocores = 0
    total_bytes = 0
    for node in nodes:
        capacity = (node.get("status") or {}).get("capacity") or {}
        nanocores += cpu_nanocores(capacity.get("cpu"))
        total_bytes += memory_bytes(capacity.get("memory"))
    return CapacityTotals(millicores=cpu_from_nanocores(nanocores).millicores, bytes=total_bytes)


def aggregate_usage(name: str, node_metrics: Mapping[str, Any]) -> MetricsSample:
    """Sum node usage samples into one sample for the whole cluster.

    ``raw``, ``timestamp`` and ``window`` are taken from the first node.
    """
    samples = list(samples_from_listing(MetricsKind.NODES, node_metrics).values())
    nanocores = sum(cpu_nanocores(s.cpu.raw) for s in samples)
    total_bytes = sum(s.memory.bytes for s in samples)
    first = samples[0] if samples else None
    return MetricsSample(
        resource_key=name,
        timestamp=(first.timestamp if first else None) or utc_now_iso(),
        window=(first.window if first else None) or "0s",
        cpu=cpu_from_nanocores(nanocores, first.cpu.raw if first else "0n"),
        memory=memory_from_bytes(total_bytes, first.memory.raw if first else "0Ki"),
    )


def namespace_summary(namespaces: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
    return [
        {
            "name": (ns.get("metadata") or {}).get("name"),
            "status": (ns.get("status") or {}).get("phase"),
            "creationTimestamp": (ns.get("metadata") or {}).get("creationTimestamp"),
            "labels": (ns.get("metadata") or {}).get("labels"),
        }
        for ns in namespaces
    ]


class ClusterService:
    def __init__(self, client: ClusterClient) -> None:
        self._client = client

    async def _cluster_metrics(self, name: str, nodes: list[dict[str, Any]], total_pods: int) -> ClusterMetrics:
        listing = await self._client.list_metrics(MetricsKind.NODES)
        return ClusterMetrics(
            usage=aggregate_usage(name, listing),
            capacity=capacity_totals(nodes),
            total_pods=total_pods,
        )

    async def list_clusters(self) -> list[ClusterRecord]:
        """Describe every kubeconfig cluster; only the current one is populated.

        Raises:
            ClusterConnectionError / UpstreamError / InvalidResponseShapeError:
                the live cluster could not be listed.
        """
        info = self._client.kubeconfig_info()
        clusters = list(info.clusters)
        if not clusters:
            clusters = [KubeconfigCluster(name=info.current_cluster or _DEFAULT_CLUSTER_NAME)]
        current_name = info.current_cluster or clusters[0].name

        version_raw, nodes_raw, namespaces_raw, pods_raw = await asyncio.gather(
            self._client.get_version(),
            self._client.list_resources(ResourceKind.NODE),
            self._client.list_resources(ResourceKind.NAMESPACE),
            self._client.list_resources(ResourceKind.POD),
        )
        nodes = require_items(nodes_raw, ResourceKind.NODE)
        namespaces = require_items(namespaces_raw, ResourceKind.NAMESPACE)
        pods = require_items(pods_raw, ResourceKind.POD)

        records: list[ClusterRecord] = []
        for cluster in clusters:
            is_current = cluster.name == current_name or len(clusters) == 1
            if is_current:
                metrics = await best_effort(
                    self._cluster_metrics(cluster.name, nodes, len(pods)),
                    zeroed_metrics(cluster.name),
                    source="cluster_metrics",
                    cluster=cluster.name,
                )
                records.append(
                    ClusterRecord(
                        name=cluster.name,
                        server=cluster.server,
                        origin=info.origin,
                        is_current=True,
                        context=info.current_context,
                        version=_version(version_raw),
                        stats=cluster_stats(nodes, namespaces, pods),
                        metrics=metrics,
                        namespaces=namespace_summary(namespaces),
                    )
                )
            else:
                records.append(
                    ClusterRecord(
                        name=cluster.name,
                        server=cluster.server,
                        origin=info.origin,
                        is_current=False,
                        context=f"context-for-{cluster.name}",
                        version=ClusterVersion(),
                        stats=ClusterStats(),
                        metrics=zeroed_metrics(cluster.name),
                        namespaces=[],
                    )
                )

        _log.info("clusters listed", count=len(records), current=current_name)
        return records

    async def get_cluster(self, name: str) -> ClusterRecord:
        name = require_name(name, "Cluster name")
        for record in await self.list_clusters():
            if record.name == name:
                return record
        raise ResourceNotFoundError("Cluster", name)


def _version(raw: Mapping[str, Any]) -> ClusterVersion:
    defaults = ClusterVersion()
    return ClusterVersion(
        major=raw.get("major") or defaults.major,
        minor=raw.get("minor") or defaults.minor,
        git_version=raw.get("gitVersion") or defaults.git_version,
        git_commit=raw.get("gitCommit") or defaults.git_commit,
        git_tree_state=raw.get("gitTreeState") or defaults.git_tree_state,
        build_date=raw.get("buildDate") or defaults.build_date,
        go_version=raw.get("goVersion") or defaults.go_version,
        compiler=raw.get("compiler") or defaults.compiler,
        platform=raw.get("platform") or defaults.platform,
    )
