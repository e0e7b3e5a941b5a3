"""Abstract cluster client consumed by the services and the stream bridge.

The process owns exactly one ClusterClient, created at startup and injected
into every service.  Implementations must be safe to call concurrently from
independent coroutines; none of the callers hold locks.

Raw objects cross this boundary as JSON-shaped dicts with the API server's
camelCase keys.  Collections are returned untouched (``{"items": [...]}``)
so that callers can validate their shape.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from kubedeck.models.cluster import KubeconfigInfo
from kubedeck.models.resources import ResourceKind


class MetricsKind(StrEnum):
    """Resource plurals served by metrics.k8s.io."""

    NODES = "nodes"
    PODS = "pods"


class ExecStream(StrEnum):
    """Origin of an ExecEvent."""

    STDOUT = "stdout"
    STDERR = "stderr"
    EXIT = "exit"


@dataclass(frozen=True)
class ExecEvent:
    """One unit of output from a remote exec channel.

    ``EXIT`` events carry the terminal status object reported by the kubelet
    (``{"status": "Success"}`` or a Failure status with details).
    """

    stream: ExecStream
    data: bytes = b""
    status: dict[str, Any] | None = None


@dataclass(frozen=True)
class LogOptions:
    """Options for a log-follow channel."""

    follow: bool = True
    tail_lines: int | None = 1000
    timestamps: bool = False


class ExecChannel(ABC):
    """An open interactive exec session (tty, stdin/stdout/stderr)."""

    @abstractmethod
    async def read(self) -> ExecEvent | None:
        """Return the next output event, or None once the remote side closed.

        Raises:
            StreamRelayError: the underlying connection failed.
        """

    @abstractmethod
    async def write_stdin(self, data: bytes) -> None:
        """Write *data* verbatim to the remote stdin.

        Raises:
            StreamRelayError: the underlying connection failed.
        """

    @abstractmethod
    async def end_stdin(self) -> None:
        """Stop forwarding input; output keeps flowing until the remote ends."""

    @abstractmethod
    async def close(self) -> None:
        """Tear down every stream of the session.  Idempotent."""


class LogChannel(ABC):
    """An open log-follow stream."""

    @abstractmethod
    async def read(self) -> bytes | None:
        """Return the next chunk of log bytes, or None at end of stream.

        Raises:
            StreamRelayError: the underlying connection failed.
        """

    @abstractmethod
    async def close(self) -> None:
        """Abort the log request.  Idempotent."""


class ClusterClient(ABC):
    """Black-box access to the Kubernetes API.

    Failure contract for every coroutine below:
        ClusterConnectionError -- the API server is unreachable.
        ResourceNotFoundError  -- 404 for the resource (or its namespace).
        UpstreamError          -- any other API error.
    Metrics calls raise MetricsUnavailableError instead of UpstreamError.
    """

    @abstractmethod
    async def list_resources(
        self,
        kind: ResourceKind,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> dict[str, Any]:
        """Return the raw collection for *kind*, cluster-wide when *namespace* is None."""

    @abstractmethod
    async def get_resource(self, kind: ResourceKind, name: str, namespace: str | None = None) -> dict[str, Any]:
        """Return one raw object."""

    @abstractmethod
    async def list_metrics(self, kind: MetricsKind) -> dict[str, Any]:
        """Return the raw metrics.k8s.io collection for *kind*."""

    @abstractmethod
    async def get_metrics(self, kind: MetricsKind, name: str, namespace: str | None = None) -> dict[str, Any]:
        """Return one raw metrics.k8s.io object."""

    @abstractmethod
    async def get_version(self) -> dict[str, Any]:
        """Return the API server's ``/version`` payload."""

    @abstractmethod
    def kubeconfig_info(self) -> KubeconfigInfo:
        """Describe the kubeconfig (or in-cluster identity) this client was built from."""

    @abstractmethod
    async def read_log(self, namespace: str, name: str, container: str) -> str:
        """Return the current log text of one container."""

    @abstractmethod
    async def open_exec(self, namespace: str, name: str, container: str, command: list[str]) -> ExecChannel:
        """Start *command* in a tty inside the container and return its channel."""

    @abstractmethod
    async def open_log_stream(
        self,
        namespace: str,
        name: str,
        container: str,
        options: LogOptions,
    ) -> LogChannel:
        """Open a log-follow stream for one container."""

    @abstractmethod
    async def create_resource(self, kind: ResourceKind, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        """Create a namespaced object and return it."""

    @abstractmethod
    async def patch_resource(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str,
        patch: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """Apply a JSON patch to a namespaced object and return it."""

    async def close(self) -> None:
        """Release connection pools.  The default implementation holds none."""
