"""Tests for kubedeck.aggregation.transform.

Covers:
  - Pod readiness (exact "True" match on the Ready condition)
  - First-non-empty requests/limits across containers
  - Metrics attachment by namespace/name
  - Container view merging containerStatuses with the pod spec
  - Node roles, Ready status and counts; namespace defaults
  - Deployment flattening and label selector rendering
  - Purity: equal inputs give equal records and inputs are not mutated
"""

from __future__ import annotations

import copy

import pytest

from kubedeck.aggregation.metrics import pod_sample
from kubedeck.aggregation.transform import (
    default_container,
    first_non_empty_amounts,
    match_label_selector,
    transform_deployment,
    transform_namespace,
    transform_node,
    transform_pod,
)
from kubedeck.models.resources import PhaseCounts, ResourceAmounts
from tests.fakes import make_deployment, make_namespace, make_node, make_pod, make_pod_metrics

# ---------------------------------------------------------------------------
# Pods
# ---------------------------------------------------------------------------


def _web_1() -> dict:
    return {
        "metadata": {"name": "web-1", "namespace": "default"},
        "status": {"phase": "Running", "conditions": [{"type": "Ready", "status": "True"}]},
        "spec": {"containers": [{"name": "web", "resources": {"requests": {"cpu": "100m", "memory": "64Mi"}}}]},
    }


class TestTransformPod:
    def test_web_1_enrichment(self) -> None:
        sample = pod_sample(make_pod_metrics("web-1"))
        assert sample is not None
        record = transform_pod(_web_1(), {"default/web-1": sample}).to_dict()

        assert record["status"]["ready"] is True
        assert record["resources"]["requests"]["cpu"] == "100m"
        assert record["resources"]["requests"]["memory"] == "64Mi"
        assert record["resources"]["limits"] == {"cpu": "0", "memory": "0"}
        assert record["metrics"] is not None
        assert record["metrics"]["usage"]["cpu"]["millicores"] == 5

    def test_missing_metrics_is_none(self) -> None:
        record = transform_pod(_web_1(), {"default/other": pod_sample(make_pod_metrics("other"))})
        assert record.metrics is None
        assert record.to_dict()["metrics"] is None

    def test_metrics_key_includes_namespace(self) -> None:
        sample = pod_sample(make_pod_metrics("web-1", namespace="staging"))
        assert transform_pod(_web_1(), {"staging/web-1": sample}).metrics is None

    @pytest.mark.parametrize(
        "conditions",
        [
            [],
            [{"type": "Ready", "status": "False"}],
            [{"type": "Ready", "status": "true"}],
            [{"type": "Ready", "status": True}],
            [{"type": "ContainersReady", "status": "True"}],
        ],
    )
    def test_ready_requires_exact_true(self, conditions: list[dict]) -> None:
        pod = _web_1()
        pod["status"]["conditions"] = conditions
        assert transform_pod(pod, {}).ready is False

    def test_missing_phase_is_unknown(self) -> None:
        pod = _web_1()
        del pod["status"]["phase"]
        assert transform_pod(pod, {}).phase == "Unknown"

    def test_empty_object_does_not_raise(self) -> None:
        record = transform_pod({}, {})
        assert record.name is None
        assert record.containers == []
        assert record.requests == ResourceAmounts()

    def test_container_view_merges_status_and_spec(self) -> None:
        pod = make_pod(
            containers=[
                {
                    "name": "app",
                    "image": "nginx:1.25",
                    "env": [{"name": "MODE", "value": "prod"}],
                    "ports": [{"name": "http", "containerPort": 80, "protocol": "TCP"}],
                    "volumeMounts": [{"name": "data", "mountPath": "/data", "readOnly": True}],
                    "resources": {"limits": {"memory": "256Mi"}},
                    "command": ["nginx"],
                }
            ]
        )
        record = transform_pod(pod, {})
        (container,) = record.containers
        assert container["name"] == "app"
        assert container["ready"] is True
        assert container["environment"] == [{"name": "MODE", "value": "prod", "valueFrom": None}]
        assert container["ports"][0]["containerPort"] == 80
        assert container["volumeMounts"][0]["mountPath"] == "/data"
        assert container["resources"] == {"requests": {}, "limits": {"memory": "256Mi"}}
        assert container["command"] == ["nginx"]
        assert record.ports == [{"name": "http", "containerPort": 80, "protocol": "TCP", "hostPort": None}]

    def test_not_started_pod_has_no_container_views(self) -> None:
        assert transform_pod(make_pod(started=False), {}).containers == []

    def test_network_and_spec_fields(self) -> None:
        record = transform_pod(make_pod(node="node-b"), {}).to_dict()
        assert record["spec"] == {"nodeName": "node-b", "restartPolicy": "Always", "serviceAccount": "default"}
        assert record["network"]["podIP"] == "10.0.0.12"
        assert record["labels"] == {"app": "web"}

    def test_input_not_mutated(self) -> None:
        pod = make_pod()
        before = copy.deepcopy(pod)
        transform_pod(pod, {})
        assert pod == before

    def test_deterministic(self) -> None:
        sample = pod_sample(make_pod_metrics("web-1"))
        metrics = {"default/web-1": sample}
        assert transform_pod(make_pod(), metrics) == transform_pod(make_pod(), metrics)


class TestFirstNonEmptyAmounts:
    def test_first_declared_value_wins_per_resource(self) -> None:
        containers = [
            {"resources": {"requests": {"memory": "64Mi"}}},
            {"resources": {"requests": {"cpu": "200m", "memory": "512Mi"}}},
            {"resources": {"requests": {"cpu": "900m"}}},
        ]
        assert first_non_empty_amounts(containers, "requests") == ResourceAmounts(cpu="200m", memory="64Mi")

    def test_values_are_not_summed(self) -> None:
        containers = [
            {"resources": {"limits": {"cpu": "1"}}},
            {"resources": {"limits": {"cpu": "1"}}},
        ]
        assert first_non_empty_amounts(containers, "limits").cpu == "1"

    def test_empty_string_is_skipped(self) -> None:
        containers = [{"resources": {"limits": {"cpu": ""}}}, {"resources": {"limits": {"cpu": "500m"}}}]
        assert first_non_empty_amounts(containers, "limits").cpu == "500m"

    def test_nothing_declared_is_zero(self) -> None:
        assert first_non_empty_amounts([{"name": "a"}], "limits") == ResourceAmounts(cpu="0", memory="0")


# ---------------------------------------------------------------------------
# Nodes and namespaces
# ---------------------------------------------------------------------------


class TestTransformNode:
    def test_roles_from_labels_in_order(self) -> None:
        node = make_node("node-a", roles=("control-plane", "etcd"))
        record = transform_node(node, {})
        assert record.roles == ["node-role.kubernetes.io/control-plane", "node-role.kubernetes.io/etcd"]

    def test_ready_status_and_info(self) -> None:
        record = transform_node(make_node("node-a", ready="False"), {})
        assert record.status == "False"
        assert record.kubelet_version == "v1.29.4"
        assert record.capacity == {"cpu": "4", "memory": "16Gi", "pods": "110"}

    def test_counts_default_to_zero(self) -> None:
        assert transform_node(make_node(), {}).pods == PhaseCounts()

    def test_counts_attached(self) -> None:
        counts = PhaseCounts(total=3, running=3)
        assert transform_node(make_node(), {}, counts).to_dict()["pods"]["running"] == 3

    def test_no_ready_condition(self) -> None:
        node = make_node()
        node["status"]["conditions"] = []
        assert transform_node(node, {}).status is None


class TestTransformNamespace:
    def test_fields(self) -> None:
        record = transform_namespace(make_namespace("kube-system"), PhaseCounts(total=1, running=1))
        data = record.to_dict()
        assert data["name"] == "kube-system"
        assert data["status"] == "Active"
        assert data["uid"] == "uid-kube-system"
        assert data["pods"]["total"] == 1

    def test_missing_phase_defaults_to_active(self) -> None:
        assert transform_namespace(make_namespace("x", phase=None)).status == "Active"

    def test_missing_labels_are_empty_dicts(self) -> None:
        record = transform_namespace({"metadata": {"name": "bare"}})
        assert record.labels == {}
        assert record.annotations == {}


# ---------------------------------------------------------------------------
# Deployments
# ---------------------------------------------------------------------------


class TestTransformDeployment:
    def test_flattened_fields(self) -> None:
        record = transform_deployment(make_deployment("web", replicas=3, image="nginx:1.27"))
        assert record.replicas.desired == 3
        assert record.replicas.ready == 3
        assert record.replicas.unavailable == 0
        assert record.strategy == "RollingUpdate"
        assert record.selector == {"app": "web"}
        assert record.images == ["nginx:1.27"]
        assert record.restarted_at is None

    def test_restarted_at_from_template_annotation(self) -> None:
        deployment = make_deployment()
        deployment["spec"]["template"]["metadata"]["annotations"] = {
            "kubectl.kubernetes.io/restartedAt": "2024-05-01T10:00:00Z"
        }
        assert transform_deployment(deployment).to_dict()["restartedAt"] == "2024-05-01T10:00:00Z"

    def test_label_selector_rendering(self) -> None:
        deployment = make_deployment(match_labels={"app": "web", "tier": "frontend"})
        assert match_label_selector(deployment) == "app=web,tier=frontend"

    def test_label_selector_empty_without_match_labels(self) -> None:
        assert match_label_selector({"spec": {"selector": {}}}) == ""


class TestDefaultContainer:
    def test_first_declared_container(self) -> None:
        pod = make_pod(containers=[{"name": "sidecar"}, {"name": "app"}])
        assert default_container(pod) == "sidecar"

    def test_no_containers(self) -> None:
        assert default_container(make_pod(containers=[])) is None
