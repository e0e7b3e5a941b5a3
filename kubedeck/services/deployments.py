"""Deployments: flattened listing, pods behind a deployment, create and restart."""

from __future__ import annotations

from typing import Any

import structlog

from kubedeck.aggregation.metrics import build_metrics_map
from kubedeck.aggregation.transform import match_label_selector, transform_deployment, transform_pod
from kubedeck.client.base import ClusterClient, MetricsKind
from kubedeck.errors import InvalidRequestError, InvalidResponseShapeError
from kubedeck.models.resources import DeploymentRecord, PodRecord, ResourceKind
from kubedeck.services.base import optional_namespace, require_items, require_name, utc_now_iso

_log = structlog.get_logger(component="services.deployments")

RESTARTED_AT_ANNOTATION = "kubectl.kubernetes.io/restartedAt"


class DeploymentService:
    def __init__(self, client: ClusterClient) -> None:
        self._client = client

    async def list_deployments(self, namespace: str | None = None) -> list[DeploymentRecord]:
        namespace = optional_namespace(namespace)
        listing = await self._client.list_resources(ResourceKind.DEPLOYMENT, namespace=namespace)
        deployments = [transform_deployment(item) for item in require_items(listing, ResourceKind.DEPLOYMENT)]
        _log.info("deployments listed", namespace=namespace or "all", count=len(deployments))
        return deployments

    async def get_deployment(self, name: str, namespace: str = "default") -> DeploymentRecord:
        return transform_deployment(await self._read(name, namespace))

    async def _read(self, name: str, namespace: str) -> dict[str, Any]:
        name = require_name(name, "Deployment name")
        namespace = require_name(namespace, "Namespace")
        return await self._client.get_resource(ResourceKind.DEPLOYMENT, name, namespace)

    async def list_deployment_raw_pods(self, name: str, namespace: str = "default") -> list[dict[str, Any]]:
        """Raw pods matched by the deployment's ``spec.selector.matchLabels``."""
        deployment = await self._read(name, namespace)
        selector = match_label_selector(deployment)
        if not selector:
            raise InvalidResponseShapeError(f"Deployment '{name}' has no matchLabels selector")
        listing = await self._client.list_resources(
            ResourceKind.POD,
            namespace=namespace.strip(),
            label_selector=selector,
        )
        return require_items(listing, ResourceKind.POD)

    async def list_deployment_pods(self, name: str, namespace: str = "default") -> list[PodRecord]:
        """Pods of one deployment, enriched exactly like ``PodService.list_pods``."""
        items = await self.list_deployment_raw_pods(name, namespace)
        metrics = await build_metrics_map(self._client, MetricsKind.PODS)
        pods = [transform_pod(item, metrics) for item in items]
        _log.info("deployment pods listed", deployment=name, namespace=namespace, count=len(pods))
        return pods

    async def create_deployment(
        self,
        namespace: str,
        deployment: dict[str, Any],
        service: dict[str, Any] | None = None,
        ingress: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Create a deployment, then the optional service and ingress, in that order.

        Bodies are passed through unchanged.  A failure aborts the remaining
        creations; objects already created are left in place.
        """
        namespace = require_name(namespace, "Namespace")
        if not deployment:
            raise InvalidRequestError("Deployment body is required")

        created: dict[str, Any] = {"deployment": None, "service": None, "ingress": None}
        created["deployment"] = await self._client.create_resource(ResourceKind.DEPLOYMENT, namespace, deployment)
        _log.info("deployment created", namespace=namespace, name=_body_name(deployment))
        if service:
            created["service"] = await self._client.create_resource(ResourceKind.SERVICE, namespace, service)
            _log.info("service created", namespace=namespace, name=_body_name(service))
        if ingress:
            created["ingress"] = await self._client.create_resource(ResourceKind.INGRESS, namespace, ingress)
            _log.info("ingress created", namespace=namespace, name=_body_name(ingress))
        return created

    async def restart_deployment(self, name: str, namespace: str = "default") -> dict[str, Any]:
        """Trigger a rollout by replacing the pod template annotations."""
        name = require_name(name, "Deployment name")
        namespace = require_name(namespace, "Namespace")
        patch = [
            {
                "op": "replace",
                "path": "/spec/template/metadata/annotations",
                "value": {RESTARTED_AT_ANNOTATION: utc_now_iso()},
            }
        ]
        result = await self._client.patch_resource(ResourceKind.DEPLOYMENT, name, namespace, patch)
        _log.info("deployment restarted", deployment=name, namespace=namespace)
        return result


def _body_name(body: dict[str, Any]) -> str | None:
    metadata = body.get("metadata")
    return metadata.get("name") if isinstance(metadata, dict) else None
