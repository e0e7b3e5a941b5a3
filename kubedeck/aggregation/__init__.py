"""Aggregation core: unit normalisation, metrics join, phase counts, transforms."""

from kubedeck.aggregation.counts import by_namespace, by_node, count_pods_by_group
from kubedeck.aggregation.metrics import build_metrics_map
from kubedeck.aggregation.transform import (
    transform_deployment,
    transform_namespace,
    transform_node,
    transform_pod,
)
from kubedeck.aggregation.units import normalize_cpu, normalize_memory

__all__ = [
    "build_metrics_map",
    "by_namespace",
    "by_node",
    "count_pods_by_group",
    "normalize_cpu",
    "normalize_memory",
    "transform_deployment",
    "transform_namespace",
    "transform_node",
    "transform_pod",
]
