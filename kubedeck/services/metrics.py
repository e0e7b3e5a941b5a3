"""Node usage metrics served on their own.

Unlike the enrichment path, metrics unavailability is an error here: callers
asked for metrics and nothing else.
"""

from __future__ import annotations

import structlog

from kubedeck.aggregation.metrics import node_sample, samples_from_listing
from kubedeck.client.base import ClusterClient, MetricsKind
from kubedeck.errors import InvalidResponseShapeError, ResourceNotFoundError
from kubedeck.models.resources import MetricsSample
from kubedeck.services.base import require_name

_log = structlog.get_logger(component="services.metrics")


class MetricsService:
    def __init__(self, client: ClusterClient) -> None:
        self._client = client

    async def list_node_metrics(self) -> list[MetricsSample]:
        """Raises MetricsUnavailableError when metrics.k8s.io is not served."""
        listing = await self._client.list_metrics(MetricsKind.NODES)
        try:
            samples = samples_from_listing(MetricsKind.NODES, listing)
        except TypeError as exc:
            raise InvalidResponseShapeError("No node metrics collection in metrics API response") from exc
        _log.info("node metrics listed", count=len(samples))
        return list(samples.values())

    async def get_node_metrics(self, name: str) -> MetricsSample:
        name = require_name(name, "Node name")
        item = await self._client.get_metrics(MetricsKind.NODES, name)
        sample = node_sample(item)
        if sample is None:
            raise ResourceNotFoundError("Node metrics", name)
        return sample
