"""Services and ingresses, returned as raw API objects."""

from __future__ import annotations

from typing import Any

import structlog

from kubedeck.client.base import ClusterClient
from kubedeck.models.resources import ResourceKind
from kubedeck.services.base import optional_namespace, require_items

_log = structlog.get_logger(component="services.network")


class NetworkService:
    def __init__(self, client: ClusterClient) -> None:
        self._client = client

    async def _list(self, kind: ResourceKind, namespace: str | None) -> list[dict[str, Any]]:
        namespace = optional_namespace(namespace)
        listing = await self._client.list_resources(kind, namespace=namespace)
        items = require_items(listing, kind)
        _log.info("network objects listed", kind=str(kind), namespace=namespace or "all", count=len(items))
        return items

    async def list_services(self, namespace: str | None = None) -> list[dict[str, Any]]:
        return await self._list(ResourceKind.SERVICE, namespace)

    async def list_ingresses(self, namespace: str | None = None) -> list[dict[str, Any]]:
        return await self._list(ResourceKind.INGRESS, namespace)
