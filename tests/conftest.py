"""Shared fixtures for kubedeck tests.

The default cluster is a small, healthy one: two nodes, two namespaces,
three pods and one deployment, with metrics-server reporting for node-a and
for the pod web-1 only.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from kubedeck.api.app import create_app
from kubedeck.models.config import KubeDeckConfig
from kubedeck.services import Services, build_services
from tests.fakes import (
    FakeClusterClient,
    make_deployment,
    make_namespace,
    make_node,
    make_node_metrics,
    make_pod,
    make_pod_metrics,
)

# ---------------------------------------------------------------------------
# Cluster fixtures
# ---------------------------------------------------------------------------


def populated_cluster() -> FakeClusterClient:
    return FakeClusterClient(
        pods=[
            make_pod(
                "web-1",
                containers=[
                    {
                        "name": "app",
                        "image": "nginx:1.25",
                        "resources": {"requests": {"cpu": "100m", "memory": "128Mi"}},
                    }
                ],
            ),
            make_pod("web-2", phase="Pending", node="node-b", ready=False),
            make_pod("coredns-abc", namespace="kube-system", labels={"k8s-app": "kube-dns"}),
        ],
        nodes=[make_node("node-a", roles=("control-plane",)), make_node("node-b", cpu="2", memory="8Gi")],
        namespaces=[make_namespace("default"), make_namespace("kube-system")],
        deployments=[make_deployment("web")],
        services=[{"metadata": {"name": "web", "namespace": "default"}, "spec": {"type": "ClusterIP"}}],
        ingresses=[{"metadata": {"name": "web", "namespace": "default"}, "spec": {"rules": []}}],
        node_metrics=[make_node_metrics("node-a", cpu="250000000n", memory="1048576Ki")],
        pod_metrics=[make_pod_metrics("web-1", usages=[("5000000n", "10240Ki")])],
    )


@pytest.fixture()
def cluster() -> FakeClusterClient:
    """Populated in-memory cluster."""
    return populated_cluster()


@pytest.fixture()
def services(cluster: FakeClusterClient) -> Services:
    return build_services(cluster)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def make_api(client: FakeClusterClient, config: KubeDeckConfig | None = None) -> TestClient:
    app = create_app(services=build_services(client), config=config or KubeDeckConfig())
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture()
def api(cluster: FakeClusterClient) -> TestClient:
    """TestClient for an app wired to the populated cluster."""
    return make_api(cluster)
