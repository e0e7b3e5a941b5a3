"""Raw Kubernetes objects -> enriched records.

Every function here is pure: the same raw object, metrics map and counts
always produce an equal record, and the inputs are never mutated.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from kubedeck.aggregation.metrics import pod_key
from kubedeck.models.resources import (
    DeploymentRecord,
    MetricsMap,
    NamespaceRecord,
    NodeRecord,
    PhaseCounts,
    PodPhase,
    PodRecord,
    RawResource,
    ReplicaCounts,
    ResourceAmounts,
)

_NODE_ROLE_LABEL = "node-role.kubernetes.io"
_RESTARTED_AT = "kubectl.kubernetes.io/restartedAt"


def _section(obj: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = obj.get(key)
    return value if isinstance(value, Mapping) else {}


def _is_ready(conditions: list[dict[str, Any]]) -> bool:
    return any(c.get("type") == "Ready" and c.get("status") == "True" for c in conditions)


def first_non_empty_amounts(containers: list[dict[str, Any]], field: str) -> ResourceAmounts:
    """Pick cpu and memory for *field* (``requests``/``limits``) across containers.

    cpu and memory are resolved independently: the first container declaring
    a non-empty value wins.  Values are not summed, so multi-container pods
    report the first container's figure only.
    """
    cpu = memory = None
    for container in containers:
        amounts = _section(_section(container, "resources"), field)
        if cpu is None and amounts.get("cpu"):
            cpu = str(amounts["cpu"])
        if memory is None and amounts.get("memory"):
            memory = str(amounts["memory"])
    return ResourceAmounts(cpu=cpu or "0", memory=memory or "0")


def _container_view(status: Mapping[str, Any], spec: Mapping[str, Any]) -> dict[str, Any]:
    resources = _section(spec, "resources")
    return {
        "name": status.get("name"),
        "ready": status.get("ready"),
        "restartCount": status.get("restartCount"),
        "image": status.get("image"),
        "imageID": status.get("imageID"),
        "containerID": status.get("containerID"),
        "state": status.get("state"),
        "lastState": status.get("lastState"),
        "environment": [
            {"name": env.get("name"), "value": env.get("value"), "valueFrom": env.get("valueFrom")}
            for env in spec.get("env") or []
        ],
        "ports": [
            {
                "name": port.get("name"),
                "containerPort": port.get("containerPort"),
                "protocol": port.get("protocol"),
                "hostPort": port.get("hostPort"),
                "hostIP": port.get("hostIP"),
            }
            for port in spec.get("ports") or []
        ],
        "volumeMounts": [
            {
                "name": mount.get("name"),
                "mountPath": mount.get("mountPath"),
                "readOnly": mount.get("readOnly"),
                "subPath": mount.get("subPath"),
            }
            for mount in spec.get("volumeMounts") or []
        ],
        "resources": {
            "requests": dict(_section(resources, "requests")),
            "limits": dict(_section(resources, "limits")),
        },
        "livenessProbe": spec.get("livenessProbe"),
        "readinessProbe": spec.get("readinessProbe"),
        "startupProbe": spec.get("startupProbe"),
        "workingDir": spec.get("workingDir"),
        "command": spec.get("command"),
        "args": spec.get("args"),
    }


def transform_pod(pod: RawResource, metrics: MetricsMap) -> PodRecord:
    """Build the enriched view of one pod.

    Containers are listed from ``status.containerStatuses`` and merged with
    the matching entry of ``spec.containers``; a pod that has not started
    any container yet therefore reports an empty list.
    """
    metadata = _section(pod, "metadata")
    spec = _section(pod, "spec")
    status = _section(pod, "status")

    name = metadata.get("name")
    namespace = metadata.get("namespace")
    conditions = list(status.get("conditions") or [])
    spec_containers = list(spec.get("containers") or [])
    specs_by_name = {c.get("name"): c for c in spec_containers}

    containers = [
        _container_view(container_status, specs_by_name.get(container_status.get("name"), {}))
        for container_status in status.get("containerStatuses") or []
    ]
    ports = [
        {
            "name": port.get("name"),
            "containerPort": port.get("containerPort"),
            "protocol": port.get("protocol"),
            "hostPort": port.get("hostPort"),
        }
        for container in spec_containers
        for port in container.get("ports") or []
    ]

    return PodRecord(
        name=name,
        namespace=namespace,
        phase=status.get("phase") or PodPhase.UNKNOWN.value,
        ready=_is_ready(conditions),
        conditions=conditions,
        node_name=spec.get("nodeName"),
        restart_policy=spec.get("restartPolicy"),
        service_account=spec.get("serviceAccountName"),
        pod_ip=status.get("podIP"),
        host_ip=status.get("hostIP"),
        ports=ports,
        containers=containers,
        requests=first_non_empty_amounts(spec_containers, "requests"),
        limits=first_non_empty_amounts(spec_containers, "limits"),
        metrics=metrics.get(pod_key(namespace, name)),
        creation_timestamp=metadata.get("creationTimestamp"),
        labels=metadata.get("labels"),
        annotations=metadata.get("annotations"),
        owner_references=metadata.get("ownerReferences"),
    )


def transform_node(node: RawResource, metrics: MetricsMap, pods: PhaseCounts | None = None) -> NodeRecord:
    """Build the enriched view of one node."""
    metadata = _section(node, "metadata")
    status = _section(node, "status")
    node_info = _section(status, "nodeInfo")
    labels = metadata.get("labels")
    name = metadata.get("name")

    ready = next((c.get("status") for c in status.get("conditions") or [] if c.get("type") == "Ready"), None)

    return NodeRecord(
        name=name,
        status=ready,
        roles=[key for key in (labels or {}) if _NODE_ROLE_LABEL in key],
        os=node_info.get("osImage"),
        kernel_version=node_info.get("kernelVersion"),
        kubelet_version=node_info.get("kubeletVersion"),
        container_runtime=node_info.get("containerRuntimeVersion"),
        addresses=status.get("addresses"),
        capacity=status.get("capacity"),
        allocatable=status.get("allocatable"),
        pods=pods if pods is not None else PhaseCounts(),
        creation_timestamp=metadata.get("creationTimestamp"),
        labels=labels,
        annotations=metadata.get("annotations"),
        metrics=metrics.get(name) if name else None,
    )


def transform_namespace(namespace: RawResource, pods: PhaseCounts | None = None) -> NamespaceRecord:
    """Build the enriched view of one namespace."""
    metadata = _section(namespace, "metadata")
    status = _section(namespace, "status")
    return NamespaceRecord(
        name=metadata.get("name"),
        status=status.get("phase") or "Active",
        creation_timestamp=metadata.get("creationTimestamp"),
        labels=dict(metadata.get("labels") or {}),
        annotations=dict(metadata.get("annotations") or {}),
        pods=pods if pods is not None else PhaseCounts(),
        uid=metadata.get("uid"),
        resource_version=metadata.get("resourceVersion"),
    )


def transform_deployment(deployment: RawResource) -> DeploymentRecord:
    """Flatten one deployment: replica counters, strategy, selector and images."""
    metadata = _section(deployment, "metadata")
    spec = _section(deployment, "spec")
    status = _section(deployment, "status")
    template = _section(spec, "template")
    pod_spec = _section(template, "spec")
    template_annotations = _section(template, "metadata").get("annotations") or {}

    return DeploymentRecord(
        name=metadata.get("name"),
        namespace=metadata.get("namespace"),
        replicas=ReplicaCounts(
            desired=int(spec.get("replicas") or 0),
            ready=int(status.get("readyReplicas") or 0),
            available=int(status.get("availableReplicas") or 0),
            updated=int(status.get("updatedReplicas") or 0),
            unavailable=int(status.get("unavailableReplicas") or 0),
        ),
        strategy=_section(spec, "strategy").get("type"),
        selector=dict(_section(spec, "selector").get("matchLabels") or {}),
        images=[c.get("image") for c in pod_spec.get("containers") or [] if c.get("image")],
        conditions=list(status.get("conditions") or []),
        creation_timestamp=metadata.get("creationTimestamp"),
        labels=metadata.get("labels"),
        annotations=metadata.get("annotations"),
        restarted_at=template_annotations.get(_RESTARTED_AT),
    )


def default_container(pod: RawResource) -> str | None:
    """Name of the first container declared in the pod spec, if any."""
    containers = _section(pod, "spec").get("containers") or []
    return containers[0].get("name") if containers else None


def match_label_selector(deployment: RawResource) -> str:
    """Render ``spec.selector.matchLabels`` as a label selector (``k=v,k2=v2``)."""
    labels = _section(_section(deployment, "spec"), "selector").get("matchLabels") or {}
    return ",".join(f"{key}={value}" for key, value in labels.items())
