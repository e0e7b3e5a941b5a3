"""Node listing and lookup, enriched with node metrics and pods-per-node."""

from __future__ import annotations

import asyncio

import structlog

from kubedeck.aggregation.counts import by_node
from kubedeck.aggregation.metrics import build_metrics_map
from kubedeck.aggregation.transform import transform_node
from kubedeck.client.base import ClusterClient, MetricsKind
from kubedeck.models.resources import MetricsSample, NodeRecord, PhaseCounts, ResourceKind
from kubedeck.services.base import best_effort, count_pods, require_items, require_name

_log = structlog.get_logger(component="services.nodes")


class NodeService:
    def __init__(self, client: ClusterClient) -> None:
        self._client = client

    async def _enrichment(self, node_names: list[str]) -> tuple[dict[str, MetricsSample], dict[str, PhaseCounts]]:
        # Metrics and pod counts are independent; fetch them concurrently.
        metrics, counts = await asyncio.gather(
            build_metrics_map(self._client, MetricsKind.NODES),
            best_effort(
                count_pods(self._client, by_node, node_names),
                {name: PhaseCounts() for name in node_names},
                source="pods_per_node",
            ),
        )
        return metrics, counts

    async def list_nodes(self) -> list[NodeRecord]:
        """List every node with its usage sample and pod phase counts."""
        listing = await self._client.list_resources(ResourceKind.NODE)
        items = require_items(listing, ResourceKind.NODE)
        names = [name for item in items if (name := (item.get("metadata") or {}).get("name"))]

        metrics, counts = await self._enrichment(names)
        nodes = [transform_node(item, metrics, counts.get((item.get("metadata") or {}).get("name"))) for item in items]
        _log.info("nodes listed", count=len(nodes), with_metrics=len(metrics))
        return nodes

    async def get_node(self, name: str) -> NodeRecord:
        """Return one enriched node.

        Raises:
            ResourceNotFoundError: the node does not exist.
        """
        name = require_name(name, "Node name")
        node = await self._client.get_resource(ResourceKind.NODE, name)
        metrics, counts = await self._enrichment([name])
        return transform_node(node, metrics, counts.get(name))
