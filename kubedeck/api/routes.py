"""REST routes.  Every handler is a thin call into one service."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, Request

from kubedeck.api.schemas import CreateDeploymentRequest, HealthResponse, success
from kubedeck.services import Services

router = APIRouter()


def _services(request: Request) -> Services:
    return request.app.state.services  # type: ignore[no-any-return]


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    from kubedeck import __version__

    info = _services(request).client.kubeconfig_info()
    return HealthResponse(version=__version__, context=info.current_context, origin=info.origin).model_dump()


# ---------------------------------------------------------------------------
# Nodes and node metrics
# ---------------------------------------------------------------------------


@router.get("/nodes")
async def list_nodes(request: Request) -> dict[str, Any]:
    nodes = await _services(request).nodes.list_nodes()
    return success([n.to_dict() for n in nodes], count=len(nodes))


@router.get("/nodes/{name}")
async def get_node(request: Request, name: str) -> dict[str, Any]:
    node = await _services(request).nodes.get_node(name)
    return success(node.to_dict())


@router.get("/metrics/nodes")
async def list_node_metrics(request: Request) -> dict[str, Any]:
    samples = await _services(request).metrics.list_node_metrics()
    return success([{"nodeName": s.resource_key, **s.to_dict()} for s in samples], count=len(samples))


@router.get("/metrics/nodes/{name}")
async def get_node_metrics(request: Request, name: str) -> dict[str, Any]:
    sample = await _services(request).metrics.get_node_metrics(name)
    return success({"nodeName": sample.resource_key, **sample.to_dict()})


# ---------------------------------------------------------------------------
# Pods
# ---------------------------------------------------------------------------


@router.get("/pods")
async def list_pods(request: Request, namespace: str | None = Query(default=None)) -> dict[str, Any]:
    pods = await _services(request).pods.list_pods(namespace)
    return success([p.to_dict() for p in pods], count=len(pods), namespace=namespace or "all")


@router.get("/pods/{name}")
async def get_pod(request: Request, name: str, namespace: str = Query(default="default")) -> dict[str, Any]:
    pod = await _services(request).pods.get_pod(name, namespace)
    return success(pod.to_dict())


@router.get("/namespaces/{namespace}/pods")
async def list_namespace_pods(request: Request, namespace: str) -> dict[str, Any]:
    pods = await _services(request).pods.list_pods_in_namespace(namespace)
    return success([p.to_dict() for p in pods], count=len(pods), namespace=namespace)


@router.get("/namespaces/{namespace}/pods/{name}/logs")
async def get_pod_logs(
    request: Request,
    namespace: str,
    name: str,
    container: str | None = Query(default=None),
) -> dict[str, Any]:
    logs = await _services(request).pods.get_pod_logs(name, namespace, container)
    return success({"pod": name, "container": container, "logs": logs}, namespace=namespace)


# ---------------------------------------------------------------------------
# Namespaces and clusters
# ---------------------------------------------------------------------------


@router.get("/namespaces")
async def list_namespaces(request: Request) -> dict[str, Any]:
    namespaces = await _services(request).namespaces.list_namespaces()
    return success([ns.to_dict() for ns in namespaces], count=len(namespaces))


@router.get("/namespaces/{name}")
async def get_namespace(request: Request, name: str) -> dict[str, Any]:
    namespace = await _services(request).namespaces.get_namespace(name)
    return success(namespace.to_dict())


@router.get("/clusters")
async def list_clusters(request: Request) -> dict[str, Any]:
    clusters = await _services(request).clusters.list_clusters()
    return success([c.to_dict() for c in clusters], count=len(clusters))


@router.get("/clusters/{name}")
async def get_cluster(request: Request, name: str) -> dict[str, Any]:
    cluster = await _services(request).clusters.get_cluster(name)
    return success(cluster.to_dict())


# ---------------------------------------------------------------------------
# Deployments
# ---------------------------------------------------------------------------


@router.get("/deployments")
async def list_deployments(request: Request, namespace: str | None = Query(default=None)) -> dict[str, Any]:
    deployments = await _services(request).deployments.list_deployments(namespace)
    return success([d.to_dict() for d in deployments], count=len(deployments), namespace=namespace or "all")


@router.post("/deployments", status_code=201)
async def create_deployment(request: Request, body: CreateDeploymentRequest) -> dict[str, Any]:
    created = await _services(request).deployments.create_deployment(
        body.namespace,
        body.deployment,
        body.service,
        body.ingress,
    )
    return success(created, namespace=body.namespace)


@router.get("/deployments/{name}")
async def get_deployment(request: Request, name: str, namespace: str = Query(default="default")) -> dict[str, Any]:
    deployment = await _services(request).deployments.get_deployment(name, namespace)
    return success(deployment.to_dict())


@router.get("/deployments/{name}/pods")
async def list_deployment_pods(
    request: Request,
    name: str,
    namespace: str = Query(default="default"),
) -> dict[str, Any]:
    pods = await _services(request).deployments.list_deployment_pods(name, namespace)
    return success([p.to_dict() for p in pods], count=len(pods), namespace=namespace)


@router.post("/deployments/{name}/restart")
async def restart_deployment(
    request: Request,
    name: str,
    namespace: str = Query(default="default"),
) -> dict[str, Any]:
    result = await _services(request).deployments.restart_deployment(name, namespace)
    return success(result, namespace=namespace)


# ---------------------------------------------------------------------------
# Services and ingresses
# ---------------------------------------------------------------------------


@router.get("/services")
async def list_services(request: Request, namespace: str | None = Query(default=None)) -> dict[str, Any]:
    items = await _services(request).network.list_services(namespace)
    return success(items, count=len(items), namespace=namespace or "all")


@router.get("/ingresses")
async def list_ingresses(request: Request, namespace: str | None = Query(default=None)) -> dict[str, Any]:
    items = await _services(request).network.list_ingresses(namespace)
    return success(items, count=len(items), namespace=namespace or "all")
