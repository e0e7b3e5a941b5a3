"""Collection services: one per resource kind, all sharing one ClusterClient."""

from __future__ import annotations

from dataclasses import dataclass

from kubedeck.client.base import ClusterClient
from kubedeck.services.clusters import ClusterService
from kubedeck.services.deployments import DeploymentService
from kubedeck.services.metrics import MetricsService
from kubedeck.services.namespaces import NamespaceService
from kubedeck.services.network import NetworkService
from kubedeck.services.nodes import NodeService
from kubedeck.services.pods import PodService


@dataclass(frozen=True)
class Services:
    """Every service plus the client they share (the stream bridge uses it directly)."""

    client: ClusterClient
    pods: PodService
    nodes: NodeService
    namespaces: NamespaceService
    clusters: ClusterService
    deployments: DeploymentService
    network: NetworkService
    metrics: MetricsService


def build_services(client: ClusterClient) -> Services:
    return Services(
        client=client,
        pods=PodService(client),
        nodes=NodeService(client),
        namespaces=NamespaceService(client),
        clusters=ClusterService(client),
        deployments=DeploymentService(client),
        network=NetworkService(client),
        metrics=MetricsService(client),
    )


__all__ = [
    "ClusterService",
    "DeploymentService",
    "MetricsService",
    "NamespaceService",
    "NetworkService",
    "NodeService",
    "PodService",
    "Services",
    "build_services",
]
