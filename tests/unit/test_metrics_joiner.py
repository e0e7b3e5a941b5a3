"""Tests for kubedeck.aggregation.metrics: normalising and keying metrics.k8s.io samples."""

from __future__ import annotations

import pytest

from kubedeck.aggregation.metrics import (
    build_metrics_map,
    node_sample,
    pod_key,
    pod_sample,
    samples_from_listing,
)
from kubedeck.client.base import MetricsKind
from kubedeck.errors import ClusterConnectionError, MetricsUnavailableError
from tests.fakes import FakeClusterClient, make_node_metrics, make_pod_metrics


class TestPodSample:
    def test_single_container(self) -> None:
        sample = pod_sample(make_pod_metrics("web-1", usages=[("5000000n", "10240Ki")]))
        assert sample is not None
        assert sample.resource_key == "default/web-1"
        assert sample.cpu.millicores == 5
        assert sample.memory.bytes == 10240 * 1024
        assert sample.window == "30s"

    def test_containers_summed_before_normalising(self) -> None:
        # 0.4m + 0.4m + 0.4m: each rounds to 0 on its own, the sum to 1.
        sample = pod_sample(make_pod_metrics(usages=[("400000n", "1Ki")] * 3))
        assert sample is not None
        assert sample.cpu.millicores == 1
        assert sample.memory.bytes == 3 * 1024

    def test_first_container_raw_strings_retained(self) -> None:
        sample = pod_sample(make_pod_metrics(usages=[("1000000n", "100Ki"), ("2000000n", "200Ki")]))
        assert sample is not None
        assert sample.cpu.raw == "1000000n"
        assert sample.memory.raw == "100Ki"
        assert sample.cpu.millicores == 3
        assert sample.memory.bytes == 300 * 1024

    def test_no_containers_is_zero_sample(self) -> None:
        sample = pod_sample(make_pod_metrics(usages=[]))
        assert sample is not None
        assert sample.cpu.millicores == 0
        assert sample.memory.bytes == 0
        assert sample.cpu.raw == "0n"
        assert sample.memory.raw == "0Ki"

    def test_nameless_item_is_skipped(self) -> None:
        assert pod_sample({"metadata": {}, "containers": []}) is None

    def test_namespaceless_item_is_skipped(self) -> None:
        item = {"metadata": {"name": "orphan"}, "containers": [{"usage": {"cpu": "1m", "memory": "1Ki"}}]}
        assert pod_sample(item) is None
        assert samples_from_listing(MetricsKind.PODS, {"items": [item]}) == {}

    def test_pod_key(self) -> None:
        assert pod_key("kube-system", "coredns") == "kube-system/coredns"


class TestNodeSample:
    def test_node_usage(self) -> None:
        sample = node_sample(make_node_metrics("node-a", cpu="250000000n", memory="1048576Ki"))
        assert sample is not None
        assert sample.resource_key == "node-a"
        assert sample.cpu.millicores == 250
        assert sample.memory.gigabytes == 1.0

    def test_missing_usage_is_zero(self) -> None:
        sample = node_sample({"metadata": {"name": "node-a"}})
        assert sample is not None
        assert sample.cpu.millicores == 0
        assert sample.memory.bytes == 0


class TestSamplesFromListing:
    def test_keys_by_resource(self) -> None:
        listing = {"items": [make_pod_metrics("a"), make_pod_metrics("b", namespace="other")]}
        samples = samples_from_listing(MetricsKind.PODS, listing)
        assert set(samples) == {"default/a", "other/b"}

    def test_missing_items_raises_type_error(self) -> None:
        with pytest.raises(TypeError):
            samples_from_listing(MetricsKind.NODES, {"kind": "Status"})


# ---------------------------------------------------------------------------
# build_metrics_map: never raises
# ---------------------------------------------------------------------------


class TestBuildMetricsMap:
    async def test_builds_node_map(self) -> None:
        client = FakeClusterClient(node_metrics=[make_node_metrics("node-a"), make_node_metrics("node-b")])
        metrics = await build_metrics_map(client, MetricsKind.NODES)
        assert set(metrics) == {"node-a", "node-b"}

    async def test_metrics_unavailable_yields_empty_map(self) -> None:
        client = FakeClusterClient()
        client.failures["metrics:pods"] = MetricsUnavailableError("metrics-server missing")
        assert await build_metrics_map(client, MetricsKind.PODS) == {}

    async def test_connection_error_yields_empty_map(self) -> None:
        client = FakeClusterClient()
        client.failures["metrics:nodes"] = ClusterConnectionError("refused")
        assert await build_metrics_map(client, MetricsKind.NODES) == {}

    async def test_malformed_listing_yields_empty_map(self) -> None:
        client = FakeClusterClient()
        client.overrides["metrics:pods"] = {"items": "not-a-list"}
        assert await build_metrics_map(client, MetricsKind.PODS) == {}
