"""Per-group pod phase histograms (pods per node, pods per namespace)."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from kubedeck.models.resources import PhaseCounts

GroupKeyFn = Callable[[Mapping[str, Any]], str | None]


def by_node(pod: Mapping[str, Any]) -> str | None:
    """Group key: the node the pod is scheduled on (None while unscheduled)."""
    return (pod.get("spec") or {}).get("nodeName") or None


def by_namespace(pod: Mapping[str, Any]) -> str | None:
    """Group key: the pod's namespace."""
    return (pod.get("metadata") or {}).get("namespace") or None


def count_pods_by_group(
    pods: Iterable[Mapping[str, Any]],
    group_key_fn: GroupKeyFn,
    groups: Iterable[str] = (),
) -> dict[str, PhaseCounts]:
    """Count pods per group and per phase in a single pass.

    Pods for which *group_key_fn* returns None are skipped.  Every key in
    *groups* is present in the result, zeroed when no pod belongs to it.
    """
    counts: dict[str, PhaseCounts] = {group: PhaseCounts() for group in groups}
    for pod in pods:
        key = group_key_fn(pod)
        if key is None:
            continue
        bucket = counts.get(key)
        if bucket is None:
            bucket = counts[key] = PhaseCounts()
        bucket.record((pod.get("status") or {}).get("phase"))
    return counts
