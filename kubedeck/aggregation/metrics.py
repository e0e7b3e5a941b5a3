"""Metrics joiner: builds the per-call MetricsMap from metrics.k8s.io.

The map is built once per service call and discarded afterwards.  A cluster
without metrics-server (or any failure while fetching or decoding) yields an
empty map so that enrichment continues with ``metrics=None`` everywhere.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from kubedeck.aggregation.units import (
    cpu_from_nanocores,
    cpu_nanocores,
    memory_bytes,
    memory_from_bytes,
    normalize_cpu,
    normalize_memory,
)
from kubedeck.client.base import ClusterClient, MetricsKind
from kubedeck.models.resources import MetricsSample

_log = structlog.get_logger(component="aggregation.metrics")


def pod_key(namespace: str | None, name: str | None) -> str:
    """Join key for pods: ``namespace/name``."""
    return f"{namespace}/{name}"


def node_sample(item: Mapping[str, Any]) -> MetricsSample | None:
    """Normalise one NodeMetrics object.  Returns None when it has no name."""
    metadata = item.get("metadata") or {}
    name = metadata.get("name")
    if not name:
        return None
    usage = item.get("usage") or {}
    return MetricsSample(
        resource_key=name,
        timestamp=item.get("timestamp"),
        window=item.get("window"),
        cpu=normalize_cpu(usage.get("cpu") or "0"),
        memory=normalize_memory(usage.get("memory") or "0"),
    )


def pod_sample(item: Mapping[str, Any]) -> MetricsSample | None:
    """Normalise one PodMetrics object by summing its containers.

    Returns None when the item has no name or no namespace.  A pod reporting
    no containers gets zero usage with raw strings "0n" and "0Ki".
    Container quantities are summed as integer nanocores / bytes and
    normalised once, so rounding happens a single time per pod.  The raw
    strings reported are those of the first container.
    """
    metadata = item.get("metadata") or {}
    name = metadata.get("name")
    namespace = metadata.get("namespace")
    if not name or not namespace:
        return None

    containers = item.get("containers") or []
    total_nanocores = 0
    total_bytes = 0
    raw_cpu = raw_memory = None
    for index, container in enumerate(containers):
        usage = container.get("usage") or {}
        if index == 0:
            raw_cpu = usage.get("cpu")
            raw_memory = usage.get("memory")
        total_nanocores += cpu_nanocores(usage.get("cpu"))
        total_bytes += memory_bytes(usage.get("memory"))

    return MetricsSample(
        resource_key=pod_key(namespace, name),
        timestamp=item.get("timestamp"),
        window=item.get("window"),
        cpu=cpu_from_nanocores(total_nanocores, raw_cpu or "0n"),
        memory=memory_from_bytes(total_bytes, raw_memory or "0Ki"),
    )


def samples_from_listing(kind: MetricsKind, listing: Mapping[str, Any]) -> dict[str, MetricsSample]:
    """Key every item of a metrics collection by its resource key.

    Raises:
        TypeError: ``listing`` has no ``items`` list.
    """
    items = listing.get("items")
    if not isinstance(items, list):
        raise TypeError(f"metrics listing for {kind} has no items list")

    build = pod_sample if kind == MetricsKind.PODS else node_sample
    samples: dict[str, MetricsSample] = {}
    for item in items:
        sample = build(item)
        if sample is not None:
            samples[sample.resource_key] = sample
    return samples


async def build_metrics_map(client: ClusterClient, kind: MetricsKind) -> dict[str, MetricsSample]:
    """Fetch and normalise the metrics listing for *kind*.

    Never raises: every failure is logged as degraded and returns ``{}``.
    """
    try:
        listing = await client.list_metrics(kind)
        samples = samples_from_listing(kind, listing)
    except Exception as exc:
        _log.warning(
            "metrics unavailable, continuing without metrics",
            kind=str(kind),
            error=str(exc),
            degraded=True,
        )
        return {}
    _log.debug("metrics map built", kind=str(kind), entries=len(samples))
    return samples
