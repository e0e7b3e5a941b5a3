"""WebSocket adapter and upgrade routes for the stream bridge."""

from __future__ import annotations

import codecs
import re

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from kubedeck.errors import ClientChannelError
from kubedeck.streaming.bridge import (
    CLOSE_NORMAL,
    CLOSE_POLICY_VIOLATION,
    ClientChannel,
    bridge_deployment_log_stream,
    bridge_log_stream,
    bridge_terminal,
)

_log = structlog.get_logger(component="api.websocket")

_SEGMENT_RE = re.compile(r"^[a-zA-Z0-9.-]+$")

# RFC 6455 limits the close reason to 123 bytes of UTF-8.
_MAX_REASON_BYTES = 123

ws_router = APIRouter()


def _truncate_reason(reason: str) -> str:
    encoded = reason.encode("utf-8")
    if len(encoded) <= _MAX_REASON_BYTES:
        return reason
    return encoded[:_MAX_REASON_BYTES].decode("utf-8", errors="ignore")


class WebSocketClientChannel(ClientChannel):
    """ClientChannel over an accepted Starlette WebSocket.

    Output bytes are forwarded as text frames; a multi-byte UTF-8 sequence
    split across two chunks is held back until it is complete.  Any
    disconnect from the client, clean or abnormal, ends the session as a
    client close.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self._ws = websocket
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._closed = False

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self._ws.client_state == WebSocketState.CONNECTED
            and self._ws.application_state == WebSocketState.CONNECTED
        )

    async def receive(self) -> bytes | None:
        if self._closed:
            return None
        try:
            message = await self._ws.receive()
        except RuntimeError as exc:
            raise ClientChannelError(str(exc)) from exc

        if message["type"] == "websocket.disconnect":
            self._closed = True
            _log.debug("client disconnected", code=message.get("code"))
            return None
        if message.get("bytes") is not None:
            return message["bytes"]
        text = message.get("text")
        return text.encode("utf-8") if text is not None else b""

    async def send(self, data: bytes) -> None:
        if not self.is_open:
            return
        text = self._decoder.decode(data)
        if not text:
            return
        try:
            await self._ws.send_text(text)
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            # The peer went away between the state check and the write.
            self._closed = True
            _log.debug("send to closed client dropped", error=str(exc))

    async def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        if not self.is_open:
            self._closed = True
            return
        self._closed = True
        tail = self._decoder.decode(b"", final=True)
        try:
            if tail:
                await self._ws.send_text(tail)
            await self._ws.close(code=code, reason=_truncate_reason(reason))
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            _log.debug("close on disconnected client ignored", code=code, error=str(exc))


async def _accept_checked(websocket: WebSocket, *segments: str) -> WebSocketClientChannel | None:
    await websocket.accept()
    channel = WebSocketClientChannel(websocket)
    if not all(segment and _SEGMENT_RE.match(segment) for segment in segments):
        _log.warning("invalid stream url", path=websocket.url.path)
        await channel.close(CLOSE_POLICY_VIOLATION, "Invalid URL format")
        return None
    return channel


@ws_router.websocket("/namespaces/{namespace}/pods/{pod}/terminal")
async def pod_terminal(websocket: WebSocket, namespace: str, pod: str) -> None:
    channel = await _accept_checked(websocket, namespace, pod)
    if channel is None:
        return
    config = websocket.app.state.config
    container = websocket.query_params.get("containerName") or None
    shell = websocket.query_params.get("shell") or config.stream.default_shell
    _log.info("terminal session requested", namespace=namespace, pod=pod, container=container)
    await bridge_terminal(websocket.app.state.services.client, channel, namespace, pod, container, shell)


@ws_router.websocket("/namespaces/{namespace}/pods/{pod}/logs/stream")
async def pod_log_stream(websocket: WebSocket, namespace: str, pod: str) -> None:
    channel = await _accept_checked(websocket, namespace, pod)
    if channel is None:
        return
    config = websocket.app.state.config
    container = websocket.query_params.get("containerName") or None
    _log.info("log stream requested", namespace=namespace, pod=pod, container=container)
    await bridge_log_stream(
        websocket.app.state.services.client,
        channel,
        namespace,
        pod,
        container,
        tail_lines=config.stream.log_tail_lines,
    )


@ws_router.websocket("/deployments/{name}/logs/stream")
async def deployment_log_stream(websocket: WebSocket, name: str) -> None:
    namespace = websocket.query_params.get("namespace") or "default"
    channel = await _accept_checked(websocket, namespace, name)
    if channel is None:
        return
    config = websocket.app.state.config
    _log.info("deployment log stream requested", namespace=namespace, deployment=name)
    await bridge_deployment_log_stream(
        websocket.app.state.services.client,
        channel,
        namespace,
        name,
        tail_lines=config.stream.log_tail_lines,
    )
