"""Namespace listing and lookup, enriched with pods-per-namespace."""

from __future__ import annotations

import structlog

from kubedeck.aggregation.counts import by_namespace
from kubedeck.aggregation.transform import transform_namespace
from kubedeck.client.base import ClusterClient
from kubedeck.models.resources import NamespaceRecord, PhaseCounts, ResourceKind
from kubedeck.services.base import best_effort, count_pods, require_items, require_name

_log = structlog.get_logger(component="services.namespaces")


class NamespaceService:
    def __init__(self, client: ClusterClient) -> None:
        self._client = client

    async def list_namespaces(self) -> list[NamespaceRecord]:
        listing = await self._client.list_resources(ResourceKind.NAMESPACE)
        items = require_items(listing, ResourceKind.NAMESPACE)
        names = [name for item in items if (name := (item.get("metadata") or {}).get("name"))]

        counts = await best_effort(
            count_pods(self._client, by_namespace, names),
            {name: PhaseCounts() for name in names},
            source="pods_per_namespace",
        )
        namespaces = [
            transform_namespace(item, counts.get((item.get("metadata") or {}).get("name"))) for item in items
        ]
        _log.info("namespaces listed", count=len(namespaces))
        return namespaces

    async def get_namespace(self, name: str) -> NamespaceRecord:
        """Return one namespace; pods are counted with a namespaced listing."""
        name = require_name(name, "Namespace name")
        namespace = await self._client.get_resource(ResourceKind.NAMESPACE, name)
        counts = await best_effort(
            count_pods(self._client, by_namespace, [name], namespace=name),
            {name: PhaseCounts()},
            source="pods_per_namespace",
            namespace=name,
        )
        return transform_namespace(namespace, counts.get(name))
