"""ClusterClient backed by kubernetes-asyncio.

Typed model objects returned by kubernetes-asyncio are converted with
``ApiClient.sanitize_for_serialization`` so callers always see the same
camelCase dicts the API server put on the wire.  API and transport errors
are translated into the ``kubedeck.errors`` taxonomy at this boundary.

Exec sessions use a dedicated ``WsApiClient`` per session (channel protocol
``v4.channel.k8s.io``: the first byte of every binary frame is the channel
number).  Log streams reuse the shared REST client with
``_preload_content=False`` and read the raw aiohttp response body.
"""

from __future__ import annotations

import json
import os
from collections.abc import Awaitable
from contextlib import AsyncExitStack
from typing import Any, TypeVar

import aiohttp
import structlog
import yaml
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio import config as k8s_config  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]
from kubernetes_asyncio.stream import WsApiClient  # type: ignore[import-untyped]

from kubedeck.client.base import (
    ClusterClient,
    ExecChannel,
    ExecEvent,
    ExecStream,
    LogChannel,
    LogOptions,
    MetricsKind,
)
from kubedeck.errors import (
    ClusterConnectionError,
    MetricsUnavailableError,
    ResourceNotFoundError,
    StreamRelayError,
    UpstreamError,
)
from kubedeck.models.cluster import KubeconfigCluster, KubeconfigInfo
from kubedeck.models.config import KubeConfig
from kubedeck.models.resources import ResourceKind

_log = structlog.get_logger(component="client.kube")

T = TypeVar("T")

_METRICS_GROUP = "metrics.k8s.io"
_METRICS_VERSION = "v1beta1"
_METRICS_MISSING = "Metrics server is not available in the cluster. Please install metrics-server."

# Exec channel numbers (v4.channel.k8s.io)
_STDIN = 0
_STDOUT = 1
_STDERR = 2
_STATUS = 3

# kind -> (api group attr, namespaced list, cluster-wide list, read, create, patch)
_OPERATIONS: dict[ResourceKind, tuple[str, str | None, str, str, str | None, str | None]] = {
    ResourceKind.POD: (
        "core",
        "list_namespaced_pod",
        "list_pod_for_all_namespaces",
        "read_namespaced_pod",
        "create_namespaced_pod",
        "patch_namespaced_pod",
    ),
    ResourceKind.NODE: ("core", None, "list_node", "read_node", None, None),
    ResourceKind.NAMESPACE: ("core", None, "list_namespace", "read_namespace", None, None),
    ResourceKind.DEPLOYMENT: (
        "apps",
        "list_namespaced_deployment",
        "list_deployment_for_all_namespaces",
        "read_namespaced_deployment",
        "create_namespaced_deployment",
        "patch_namespaced_deployment",
    ),
    ResourceKind.SERVICE: (
        "core",
        "list_namespaced_service",
        "list_service_for_all_namespaces",
        "read_namespaced_service",
        "create_namespaced_service",
        "patch_namespaced_service",
    ),
    ResourceKind.INGRESS: (
        "networking",
        "list_namespaced_ingress",
        "list_ingress_for_all_namespaces",
        "read_namespaced_ingress",
        "create_namespaced_ingress",
        "patch_namespaced_ingress",
    ),
}


class KubernetesClusterClient(ClusterClient):
    """Production ClusterClient.  Build it with :meth:`connect`."""

    def __init__(
        self,
        configuration: k8s_client.Configuration,
        kubeconfig: KubeconfigInfo,
    ) -> None:
        self._configuration = configuration
        self._kubeconfig = kubeconfig
        self._api_client = k8s_client.ApiClient(configuration=configuration)
        self._apis: dict[str, Any] = {
            "core": k8s_client.CoreV1Api(self._api_client),
            "apps": k8s_client.AppsV1Api(self._api_client),
            "networking": k8s_client.NetworkingV1Api(self._api_client),
        }
        self._custom = k8s_client.CustomObjectsApi(self._api_client)
        self._version = k8s_client.VersionApi(self._api_client)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    async def connect(cls, config: KubeConfig) -> KubernetesClusterClient:
        """Load in-cluster credentials or a kubeconfig according to *config*."""
        configuration = k8s_client.Configuration()

        if config.in_cluster in ("auto", "true"):
            try:
                # load_incluster_config() is synchronous in kubernetes-asyncio
                k8s_config.load_incluster_config(client_configuration=configuration)
                _log.info("k8s client configured from in-cluster service account")
                info = KubeconfigInfo(
                    origin="In-cluster service account",
                    current_context="in-cluster",
                    current_cluster="in-cluster",
                    clusters=[KubeconfigCluster(name="in-cluster", server=configuration.host)],
                )
                return cls(configuration, info)
            except k8s_config.ConfigException:
                if config.in_cluster == "true":
                    raise

        await k8s_config.load_kube_config(
            config_file=config.kubeconfig or None,
            context=config.context or None,
            client_configuration=configuration,
        )
        _log.info("k8s client configured from kubeconfig", path=config.kubeconfig, context=config.context or None)
        return cls(configuration, read_kubeconfig_info(config.kubeconfig, config.context))

    async def close(self) -> None:
        await self._api_client.close()

    # ------------------------------------------------------------------
    # Error translation
    # ------------------------------------------------------------------

    async def _call(
        self,
        call: Awaitable[T],
        kind: str,
        name: str | None = None,
        namespace: str | None = None,
    ) -> T:
        try:
            return await call
        except ApiException as exc:
            if exc.status == 404:
                if name is None and namespace:
                    # A namespaced listing 404s only when the namespace is missing.
                    raise ResourceNotFoundError("Namespace", namespace) from exc
                raise ResourceNotFoundError(kind, name or "", namespace) from exc
            raise UpstreamError(
                f"Kubernetes API returned {exc.status} for {kind}: {exc.reason}",
                status=exc.status,
            ) from exc
        except aiohttp.ClientResponseError as exc:
            # WebSocket upgrades fail with a handshake error instead of ApiException.
            raise UpstreamError(
                f"Kubernetes API returned {exc.status} for {kind}: {exc.message}",
                status=exc.status,
            ) from exc
        except (aiohttp.ClientConnectionError, TimeoutError, OSError) as exc:
            raise ClusterConnectionError(str(exc)) from exc

    async def _metrics_call(self, call: Awaitable[T], kind: MetricsKind, name: str | None = None) -> T:
        try:
            return await call
        except ApiException as exc:
            if exc.status == 404 and name is not None:
                label = "Node metrics" if kind == MetricsKind.NODES else "Pod metrics"
                raise ResourceNotFoundError(label, name) from exc
            if exc.status in (404, 503):
                raise MetricsUnavailableError(_METRICS_MISSING) from exc
            raise MetricsUnavailableError(f"Metrics API returned {exc.status}: {exc.reason}") from exc
        except (aiohttp.ClientConnectionError, TimeoutError, OSError) as exc:
            raise ClusterConnectionError(str(exc)) from exc

    def _serialize(self, obj: Any) -> dict[str, Any]:
        data = self._api_client.sanitize_for_serialization(obj)
        return data if isinstance(data, dict) else {}

    def _method(self, kind: ResourceKind, index: int) -> Any:
        group, *names = _OPERATIONS[kind]
        method_name = names[index - 1]
        if method_name is None:
            raise UpstreamError(f"{kind} does not support this operation")
        return getattr(self._apis[group], method_name)

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    async def list_resources(
        self,
        kind: ResourceKind,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        if namespace and _OPERATIONS[kind][1] is not None:
            result = await self._call(self._method(kind, 1)(namespace, **kwargs), kind, namespace=namespace)
        else:
            result = await self._call(self._method(kind, 2)(**kwargs), kind)
        return self._serialize(result)

    async def get_resource(self, kind: ResourceKind, name: str, namespace: str | None = None) -> dict[str, Any]:
        read = self._method(kind, 3)
        call = read(name, namespace) if _OPERATIONS[kind][1] is not None else read(name)
        return self._serialize(await self._call(call, kind, name=name, namespace=namespace))

    async def create_resource(self, kind: ResourceKind, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        create = self._method(kind, 4)
        metadata = body.get("metadata")
        name = str(metadata.get("name", "")) if isinstance(metadata, dict) else ""
        result = await self._call(create(namespace, body), kind, name=name)
        return self._serialize(result)

    async def patch_resource(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str,
        patch: list[dict[str, Any]],
    ) -> dict[str, Any]:
        patch_fn = self._method(kind, 5)
        result = await self._call(patch_fn(name, namespace, patch), kind, name=name, namespace=namespace)
        return self._serialize(result)

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    async def list_metrics(self, kind: MetricsKind) -> dict[str, Any]:
        call = self._custom.list_cluster_custom_object(
            group=_METRICS_GROUP,
            version=_METRICS_VERSION,
            plural=kind.value,
        )
        result = await self._metrics_call(call, kind)
        return result if isinstance(result, dict) else {}

    async def get_metrics(self, kind: MetricsKind, name: str, namespace: str | None = None) -> dict[str, Any]:
        if namespace:
            call = self._custom.get_namespaced_custom_object(
                group=_METRICS_GROUP,
                version=_METRICS_VERSION,
                namespace=namespace,
                plural=kind.value,
                name=name,
            )
        else:
            call = self._custom.get_cluster_custom_object(
                group=_METRICS_GROUP,
                version=_METRICS_VERSION,
                plural=kind.value,
                name=name,
            )
        result = await self._metrics_call(call, kind, name=name)
        return result if isinstance(result, dict) else {}

    # ------------------------------------------------------------------
    # Cluster identity
    # ------------------------------------------------------------------

    async def get_version(self) -> dict[str, Any]:
        return self._serialize(await self._call(self._version.get_code(), "Version"))

    def kubeconfig_info(self) -> KubeconfigInfo:
        return self._kubeconfig

    # ------------------------------------------------------------------
    # Logs and exec
    # ------------------------------------------------------------------

    async def read_log(self, namespace: str, name: str, container: str) -> str:
        call = self._apis["core"].read_namespaced_pod_log(name, namespace, container=container)
        result = await self._call(call, ResourceKind.POD, name=name, namespace=namespace)
        return result if isinstance(result, str) else str(result)

    async def open_log_stream(
        self,
        namespace: str,
        name: str,
        container: str,
        options: LogOptions,
    ) -> LogChannel:
        call = self._apis["core"].read_namespaced_pod_log(
            name,
            namespace,
            container=container,
            follow=options.follow,
            tail_lines=options.tail_lines,
            timestamps=options.timestamps,
            _preload_content=False,
        )
        response = await self._call(call, ResourceKind.POD, name=name, namespace=namespace)
        return _ResponseLogChannel(response)

    async def open_exec(self, namespace: str, name: str, container: str, command: list[str]) -> ExecChannel:
        stack = AsyncExitStack()
        try:
            ws_api = await stack.enter_async_context(WsApiClient(configuration=self._configuration))
            core = k8s_client.CoreV1Api(api_client=ws_api)
            request = await self._call(
                core.connect_get_namespaced_pod_exec(
                    name,
                    namespace,
                    container=container,
                    command=command,
                    stdin=True,
                    stdout=True,
                    stderr=True,
                    tty=True,
                    _preload_content=False,
                ),
                ResourceKind.POD,
                name=name,
                namespace=namespace,
            )
            websocket = await self._call(stack.enter_async_context(request), ResourceKind.POD, name, namespace)
        except BaseException:
            await stack.aclose()
            raise
        return _WebSocketExecChannel(websocket, stack)


class _WebSocketExecChannel(ExecChannel):
    """Demultiplexes a v4 channel-protocol websocket into ExecEvents."""

    def __init__(self, websocket: aiohttp.ClientWebSocketResponse, stack: AsyncExitStack) -> None:
        self._ws = websocket
        self._stack = stack
        self._stdin_open = True
        self._closed = False

    async def read(self) -> ExecEvent | None:
        while True:
            try:
                msg = await self._ws.receive()
            except (aiohttp.ClientError, OSError) as exc:
                raise StreamRelayError(f"exec websocket read failed: {exc}") from exc

            if msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
                return None
            if msg.type == aiohttp.WSMsgType.ERROR:
                raise StreamRelayError(f"exec websocket error: {self._ws.exception()}")
            if msg.type != aiohttp.WSMsgType.BINARY or not msg.data:
                continue

            channel, payload = msg.data[0], bytes(msg.data[1:])
            if channel == _STDOUT and payload:
                return ExecEvent(ExecStream.STDOUT, payload)
            if channel == _STDERR and payload:
                return ExecEvent(ExecStream.STDERR, payload)
            if channel == _STATUS and payload:
                return ExecEvent(ExecStream.EXIT, status=_decode_status(payload))

    async def write_stdin(self, data: bytes) -> None:
        if not self._stdin_open or self._closed:
            return
        try:
            await self._ws.send_bytes(bytes([_STDIN]) + data)
        except (aiohttp.ClientError, ConnectionResetError, OSError) as exc:
            raise StreamRelayError(f"exec stdin write failed: {exc}") from exc

    async def end_stdin(self) -> None:
        # v4 has no half-close frame; further input is simply dropped.
        self._stdin_open = False

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._stdin_open = False
        await self._stack.aclose()


class _ResponseLogChannel(LogChannel):
    """Reads a follow=true log response body chunk by chunk."""

    def __init__(self, response: aiohttp.ClientResponse) -> None:
        self._response = response
        self._closed = False

    async def read(self) -> bytes | None:
        if self._closed:
            return None
        try:
            chunk = await self._response.content.readany()
        except (aiohttp.ClientError, OSError) as exc:
            raise StreamRelayError(f"log stream read failed: {exc}") from exc
        return chunk or None

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._response.close()


def _decode_status(payload: bytes) -> dict[str, Any]:
    try:
        status = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return {"status": "Unknown", "message": payload.decode("utf-8", errors="replace")}
    return status if isinstance(status, dict) else {"status": str(status)}


def read_kubeconfig_info(path: str, context: str = "") -> KubeconfigInfo:
    """Read cluster names, servers and the active context from a kubeconfig file.

    Only the first path of a ``:``-separated KUBECONFIG list is read.  A missing
    or unreadable file yields an info object with no clusters.
    """
    first_path = path.split(os.pathsep)[0] if path else ""
    origin = f"Kubeconfig: {first_path}"
    try:
        with open(os.path.expanduser(first_path), encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        _log.warning("kubeconfig unreadable", path=first_path, error=str(exc))
        return KubeconfigInfo(origin=origin, current_context=context or None, current_cluster=None)
    if not isinstance(data, dict):
        data = {}

    clusters = [
        KubeconfigCluster(name=str(entry.get("name", "")), server=(entry.get("cluster") or {}).get("server"))
        for entry in data.get("clusters") or []
        if isinstance(entry, dict)
    ]
    current_context = context or data.get("current-context")
    current_cluster = None
    for entry in data.get("contexts") or []:
        if isinstance(entry, dict) and entry.get("name") == current_context:
            current_cluster = (entry.get("context") or {}).get("cluster")
            break
    return KubeconfigInfo(
        origin=origin,
        current_context=current_context,
        current_cluster=current_cluster,
        clusters=clusters,
    )
