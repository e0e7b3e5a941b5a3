"""Error taxonomy shared by the client, the services and the stream bridge.

Every error raised across a kubedeck boundary derives from KubeDeckError.
The REST layer maps each subclass to a status code and error code; the
stream bridge maps setup and relay failures to WebSocket close codes.
"""

from __future__ import annotations


class KubeDeckError(Exception):
    """Base class for all kubedeck errors."""

    error_code = "INTERNAL_ERROR"


class InvalidRequestError(KubeDeckError):
    """A caller supplied an empty or malformed identifier."""

    error_code = "INVALID_REQUEST"


class ClusterConnectionError(KubeDeckError):
    """The Kubernetes API server could not be reached at the network level."""

    error_code = "CLUSTER_UNREACHABLE"

    def __init__(self, detail: str = "") -> None:
        message = "Cannot connect to Kubernetes cluster. Please check your kubeconfig and cluster status."
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ResourceNotFoundError(KubeDeckError):
    """The requested resource (or its namespace) does not exist."""

    error_code = "NOT_FOUND"

    def __init__(self, kind: str, name: str, namespace: str | None = None) -> None:
        if namespace:
            message = f"{kind} '{name}' not found in namespace '{namespace}'"
        else:
            message = f"{kind} '{name}' not found"
        super().__init__(message)
        self.kind = kind
        self.name = name
        self.namespace = namespace


class InvalidResponseShapeError(KubeDeckError):
    """The API server answered with a payload that is not the expected collection."""

    error_code = "INVALID_UPSTREAM_RESPONSE"


class UpstreamError(KubeDeckError):
    """The API server rejected a call for a reason other than 404."""

    error_code = "UPSTREAM_ERROR"

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class MetricsUnavailableError(KubeDeckError):
    """metrics.k8s.io is not served (metrics-server missing) or failed."""

    error_code = "METRICS_UNAVAILABLE"


class StreamSetupError(KubeDeckError):
    """Container resolution or opening the remote exec/log channel failed."""

    error_code = "STREAM_SETUP_FAILED"


class StreamRelayError(KubeDeckError):
    """An I/O failure on one of the remote streams after the session started."""

    error_code = "STREAM_RELAY_FAILED"


class ClientChannelError(KubeDeckError):
    """The client-facing duplex channel reported an error."""

    error_code = "CLIENT_CHANNEL_ERROR"
