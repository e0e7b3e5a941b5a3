"""Shared fixtures for kubedeck integration tests.

Builds a larger in-memory cluster than the unit fixtures (three nodes, one
of them NotReady, several namespaces, workloads in every phase and one
unscheduled pod) and wires it through services, the FastAPI app and the
stream bridge exactly as production does, minus the network.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tests.conftest import make_api
from tests.fakes import (
    FakeClusterClient,
    default_kubeconfig_info,
    make_deployment,
    make_namespace,
    make_node,
    make_node_metrics,
    make_pod,
    make_pod_metrics,
)

# ---------------------------------------------------------------------------
# Cluster builder
# ---------------------------------------------------------------------------


def busy_cluster() -> FakeClusterClient:
    """A three-node cluster with a spread of pod phases.

    node-a: api-1, api-2 (Running), batch-1 (Succeeded)
    node-b: api-3 (Running), worker-1 (Failed)
    node-c: NotReady, no pods
    unscheduled: worker-2 (Pending, no nodeName)
    """
    pods = [
        make_pod("api-1", namespace="shop", node="node-a", labels={"app": "api"}),
        make_pod("api-2", namespace="shop", node="node-a", labels={"app": "api"}),
        make_pod("api-3", namespace="shop", node="node-b", labels={"app": "api"}),
        make_pod("batch-1", namespace="jobs", phase="Succeeded", node="node-a", ready=False),
        make_pod("worker-1", namespace="jobs", phase="Failed", node="node-b", ready=False),
        make_pod("worker-2", namespace="jobs", phase="Pending", node=None, ready=False, started=False),
    ]
    return FakeClusterClient(
        pods=pods,
        nodes=[
            make_node("node-a", roles=("control-plane",)),
            make_node("node-b", cpu="8", memory="32Gi"),
            make_node("node-c", ready="False", cpu="2", memory="4Gi"),
        ],
        namespaces=[make_namespace("default"), make_namespace("shop"), make_namespace("jobs")],
        deployments=[make_deployment("api", namespace="shop", replicas=3)],
        services=[{"metadata": {"name": "api", "namespace": "shop"}, "spec": {"type": "ClusterIP"}}],
        ingresses=[],
        node_metrics=[
            make_node_metrics("node-a", cpu="500000000n", memory="2097152Ki"),
            make_node_metrics("node-b", cpu="1500000000n", memory="4194304Ki"),
        ],
        pod_metrics=[
            make_pod_metrics("api-1", namespace="shop", usages=[("10000000n", "20480Ki")]),
            make_pod_metrics("api-2", namespace="shop", usages=[("20000000n", "40960Ki"), ("1000000n", "1024Ki")]),
        ],
        info=default_kubeconfig_info(clusters=("prod", "staging"), current="prod"),
    )


@pytest.fixture()
def busy() -> FakeClusterClient:
    return busy_cluster()


@pytest.fixture()
def busy_api(busy: FakeClusterClient) -> TestClient:
    return make_api(busy)
