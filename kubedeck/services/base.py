"""Helpers shared by every collection service.

Services follow one partial-failure policy:

* the primary listing (or single object) is fatal: its errors propagate;
* enrichment sources (metrics, pod counts) are best-effort: a failure is
  logged as degraded and replaced with a neutral fallback.
"""

from __future__ import annotations

from collections.abc import Awaitable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any, TypeVar

import structlog

from kubedeck.aggregation.counts import GroupKeyFn, count_pods_by_group
from kubedeck.client.base import ClusterClient
from kubedeck.errors import InvalidRequestError, InvalidResponseShapeError
from kubedeck.models.resources import PhaseCounts, ResourceKind

_log = structlog.get_logger(component="services")

T = TypeVar("T")


async def best_effort(awaitable: Awaitable[T], fallback: T, source: str, **context: Any) -> T:
    """Await *awaitable*; on any error log a degraded warning and return *fallback*."""
    try:
        return await awaitable
    except Exception as exc:
        _log.warning(
            "enrichment source failed, continuing without it",
            source=source,
            error=str(exc),
            degraded=True,
            **context,
        )
        return fallback


def require_items(listing: Any, kind: ResourceKind | str) -> list[dict[str, Any]]:
    """Return ``listing["items"]`` or raise InvalidResponseShapeError.

    The payload shape (type and keys, never the content) is logged.
    """
    items = listing.get("items") if isinstance(listing, Mapping) else None
    if not isinstance(items, list):
        _log.error(
            "invalid response structure from kubernetes api",
            kind=str(kind),
            payload_type=type(listing).__name__,
            payload_keys=sorted(listing) if isinstance(listing, Mapping) else None,
            items_type=type(items).__name__,
        )
        raise InvalidResponseShapeError(f"No {kind} collection in Kubernetes API response")
    return items


def require_name(value: str | None, what: str) -> str:
    """Strip *value*; raise InvalidRequestError when nothing is left."""
    if value is None or not str(value).strip():
        raise InvalidRequestError(f"{what} is required and must be a non-empty string")
    return str(value).strip()


def optional_namespace(value: str | None) -> str | None:
    """Treat an empty or blank namespace filter as "all namespaces"."""
    if value is None or not value.strip():
        return None
    return value.strip()


async def count_pods(
    client: ClusterClient,
    group_key_fn: GroupKeyFn,
    groups: Iterable[str],
    namespace: str | None = None,
) -> dict[str, PhaseCounts]:
    """List pods (cluster-wide or in *namespace*) and count them per group."""
    listing = await client.list_resources(ResourceKind.POD, namespace=namespace)
    return count_pods_by_group(require_items(listing, ResourceKind.POD), group_key_fn, groups)


def utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat().replace("+00:00", "Z")
