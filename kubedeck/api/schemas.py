"""Request and response envelopes for the REST API."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _now() -> str:
    return datetime.now(tz=UTC).isoformat().replace("+00:00", "Z")


class ErrorResponse(BaseModel):
    """Error envelope returned with every 4xx/5xx response."""

    success: bool = False
    error: str
    detail: str
    timestamp: str = Field(default_factory=_now)


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    context: str | None = None
    origin: str | None = None
    timestamp: str = Field(default_factory=_now)


class CreateDeploymentRequest(BaseModel):
    """Body of POST /deployments.  Object bodies are passed through unchanged."""

    namespace: str = Field(default="default", min_length=1)
    deployment: dict[str, Any]
    service: dict[str, Any] | None = None
    ingress: dict[str, Any] | None = None


def success(data: Any, count: int | None = None, namespace: str | None = None, **extra: Any) -> dict[str, Any]:
    """Build the success envelope: ``{"success": true, "data", "count"?, "namespace"?, "timestamp"}``."""
    body: dict[str, Any] = {"success": True, "data": data}
    if count is not None:
        body["count"] = count
    if namespace is not None:
        body["namespace"] = namespace
    body.update(extra)
    body["timestamp"] = _now()
    return body
