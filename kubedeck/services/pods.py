"""Pod listing, lookup and one-shot log retrieval."""

from __future__ import annotations

import structlog

from kubedeck.aggregation.metrics import build_metrics_map
from kubedeck.aggregation.transform import default_container, transform_pod
from kubedeck.client.base import ClusterClient, MetricsKind
from kubedeck.errors import InvalidRequestError
from kubedeck.models.resources import PodRecord, ResourceKind
from kubedeck.services.base import optional_namespace, require_items, require_name

_log = structlog.get_logger(component="services.pods")


class PodService:
    """Lists pods enriched with live pod metrics."""

    def __init__(self, client: ClusterClient) -> None:
        self._client = client

    async def list_pods(self, namespace: str | None = None, label_selector: str | None = None) -> list[PodRecord]:
        """List pods cluster-wide, or in *namespace* when given.

        Raises:
            ResourceNotFoundError: *namespace* does not exist.
            ClusterConnectionError / UpstreamError / InvalidResponseShapeError.
        """
        namespace = optional_namespace(namespace)
        listing = await self._client.list_resources(ResourceKind.POD, namespace=namespace, label_selector=label_selector)
        items = require_items(listing, ResourceKind.POD)

        metrics = await build_metrics_map(self._client, MetricsKind.PODS)
        pods = [transform_pod(item, metrics) for item in items]
        _log.info(
            "pods listed",
            namespace=namespace or "all",
            count=len(pods),
            with_metrics=sum(1 for p in pods if p.metrics is not None),
        )
        return pods

    async def list_pods_in_namespace(self, namespace: str) -> list[PodRecord]:
        return await self.list_pods(require_name(namespace, "Namespace"))

    async def get_pod(self, name: str, namespace: str = "default") -> PodRecord:
        """Return one enriched pod.

        Raises:
            ResourceNotFoundError: the pod does not exist.
        """
        name = require_name(name, "Pod name")
        namespace = require_name(namespace, "Namespace")
        pod = await self._client.get_resource(ResourceKind.POD, name, namespace)
        metrics = await build_metrics_map(self._client, MetricsKind.PODS)
        _log.debug("pod fetched", pod=name, namespace=namespace)
        return transform_pod(pod, metrics)

    async def get_pod_logs(self, name: str, namespace: str = "default", container: str | None = None) -> str:
        """Return the current log text of one container (default: first container)."""
        name = require_name(name, "Pod name")
        namespace = require_name(namespace, "Namespace")
        if not container:
            pod = await self._client.get_resource(ResourceKind.POD, name, namespace)
            container = default_container(pod)
            if container is None:
                raise InvalidRequestError(f"Pod '{name}' has no containers")
        text = await self._client.read_log(namespace, name, container)
        _log.debug("pod logs read", pod=name, namespace=namespace, container=container, length=len(text))
        return text
