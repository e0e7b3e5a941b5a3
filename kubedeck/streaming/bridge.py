"""Interactive stream bridge: exec and log-follow sessions over a client channel.

One StreamSession per client connection.  A session moves through

    RESOLVING_CONTAINER -> OPENING_REMOTE -> RELAYING -> CLOSED

and owns its remote channel exclusively; nothing is shared between sessions.
While relaying, two tasks run concurrently: one copies remote output to the
client, the other copies client input to the remote stdin (log sessions only
watch the client for disconnects).  Whichever ends first decides how the
session terminates:

    client closed            -> remote streams closed, nothing sent
    client errored           -> remote stdin ended, output keeps draining
    remote exit / log end    -> client closed with 1000
    remote setup failed      -> "Error: ..." sent, client closed with 1011
    remote I/O error         -> client closed with 1011

There is no timeout; a session lasts until one of those happens.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from enum import Enum, StrEnum

import structlog

from kubedeck.aggregation.transform import default_container, match_label_selector
from kubedeck.client.base import (
    ClusterClient,
    ExecChannel,
    ExecStream,
    LogChannel,
    LogOptions,
)
from kubedeck.errors import ClientChannelError, KubeDeckError, StreamSetupError
from kubedeck.models.resources import ResourceKind

_log = structlog.get_logger(component="streaming.bridge")

DEFAULT_SHELL = "/bin/sh"
DEFAULT_TAIL_LINES = 1000

CLOSE_NORMAL = 1000
CLOSE_POLICY_VIOLATION = 1008
CLOSE_INTERNAL_ERROR = 1011


class SessionState(StrEnum):
    RESOLVING_CONTAINER = "resolving_container"
    OPENING_REMOTE = "opening_remote"
    RELAYING = "relaying"
    CLOSED = "closed"


class SessionMode(StrEnum):
    TERMINAL = "terminal"
    LOGS = "logs"


class ClientChannel(ABC):
    """The client side of a session: a duplex, message-oriented channel."""

    @abstractmethod
    async def receive(self) -> bytes | None:
        """Return the next client message, or None once the client has closed.

        Raises:
            ClientChannelError: the channel failed without a clean close.
        """

    @abstractmethod
    async def send(self, data: bytes) -> None:
        """Send *data* to the client.  A no-op once the channel is closed."""

    @abstractmethod
    async def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """Close the channel.  Idempotent."""

    @property
    @abstractmethod
    def is_open(self) -> bool: ...


class _ClientEnd(Enum):
    CLOSED = "closed"
    ERRORED = "errored"


class _RemoteEnd(Enum):
    EXITED = "exited"
    ENDED = "ended"


class StreamSession:
    """Relays one exec or log-follow stream to one client channel."""

    def __init__(
        self,
        client: ClusterClient,
        channel: ClientChannel,
        mode: SessionMode,
        namespace: str,
        pod: str | None = None,
        container: str | None = None,
        command: list[str] | None = None,
        log_options: LogOptions | None = None,
        deployment: str | None = None,
    ) -> None:
        if pod is None and deployment is None:
            raise ValueError("either pod or deployment is required")
        self._client = client
        self._channel = channel
        self._mode = mode
        self._namespace = namespace
        self._pod = pod
        self._container = container or None
        self._command = command or [DEFAULT_SHELL]
        self._log_options = log_options or LogOptions(tail_lines=DEFAULT_TAIL_LINES)
        self._deployment = deployment

        self._state = SessionState.RESOLVING_CONTAINER
        self._exec: ExecChannel | None = None
        self._logs: LogChannel | None = None
        self._log = _log.bind(mode=str(mode), namespace=namespace, pod=pod, deployment=deployment)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def container(self) -> str | None:
        return self._container

    @property
    def pod(self) -> str | None:
        return self._pod

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Drive the session to CLOSED.  Never raises for session-level failures."""
        try:
            await self._resolve_target()
            self._state = SessionState.OPENING_REMOTE
            await self._open_remote()
        except KubeDeckError as exc:
            await self._fail_setup(exc)
            return
        except Exception as exc:
            self._log.error("unexpected stream setup failure", error=str(exc), exc_info=True)
            await self._fail_setup(exc)
            return

        self._state = SessionState.RELAYING
        self._log.info("stream session relaying", container=self._container)
        try:
            await self._relay()
        finally:
            await self._close_remote()
            self._state = SessionState.CLOSED
            self._log.info("stream session closed", container=self._container)

    async def _resolve_target(self) -> None:
        try:
            if self._pod is None:
                self._pod = await self._first_deployment_pod()
            if self._container is None:
                pod = await self._client.get_resource(ResourceKind.POD, self._pod, self._namespace)
                self._container = default_container(pod)
                if self._container is None:
                    raise StreamSetupError(f"No containers found in pod: {self._pod}")
                self._log.info("container resolved from pod spec", container=self._container)
        except StreamSetupError:
            raise
        except KubeDeckError as exc:
            raise StreamSetupError(str(exc)) from exc

    async def _first_deployment_pod(self) -> str:
        assert self._deployment is not None
        deployment = await self._client.get_resource(ResourceKind.DEPLOYMENT, self._deployment, self._namespace)
        selector = match_label_selector(deployment)
        if not selector:
            raise StreamSetupError(f"Deployment {self._deployment} has no pod selector")
        listing = await self._client.list_resources(ResourceKind.POD, self._namespace, label_selector=selector)
        items = listing.get("items") or []
        if not items:
            raise StreamSetupError(f"No pods found for deployment {self._deployment}")
        pod = items[0]
        # The first container of the chosen pod is always used.
        self._container = default_container(pod)
        if self._container is None:
            raise StreamSetupError(f"No containers found in pod: {(pod.get('metadata') or {}).get('name')}")
        return (pod.get("metadata") or {}).get("name")

    async def _open_remote(self) -> None:
        assert self._pod is not None and self._container is not None
        try:
            if self._mode == SessionMode.TERMINAL:
                self._exec = await self._client.open_exec(
                    self._namespace, self._pod, self._container, list(self._command)
                )
            else:
                self._logs = await self._client.open_log_stream(
                    self._namespace, self._pod, self._container, self._log_options
                )
        except KubeDeckError as exc:
            raise StreamSetupError(str(exc)) from exc

    async def _fail_setup(self, exc: Exception) -> None:
        message = str(exc)
        self._log.error("stream setup failed", state=str(self._state), error=message)
        what = "exec" if self._mode == SessionMode.TERMINAL else "log stream"
        await self._close_remote()
        if self._channel.is_open:
            await self._channel.send(f"Error: {message}".encode())
            await self._channel.close(CLOSE_INTERNAL_ERROR, f"Error setting up {what}: {message}")
        self._state = SessionState.CLOSED

    async def _close_remote(self) -> None:
        for remote in (self._exec, self._logs):
            if remote is None:
                continue
            try:
                await remote.close()
            except KubeDeckError as exc:
                self._log.warning("remote stream close failed", error=str(exc))

    # ------------------------------------------------------------------
    # Relay
    # ------------------------------------------------------------------

    async def _relay(self) -> None:
        remote_task = asyncio.create_task(self._pump_remote(), name=f"{self._mode}-remote")
        client_task = asyncio.create_task(self._pump_client(), name=f"{self._mode}-client")
        pending: set[asyncio.Task] = {remote_task, client_task}
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)

                if client_task in done:
                    error = client_task.exception()
                    if error is not None:
                        await self._relay_failed(error)
                        return
                    if client_task.result() is _ClientEnd.CLOSED:
                        self._log.info("client closed the session")
                        return
                    # Client errored: stop feeding stdin, keep draining output.
                    if self._exec is not None:
                        await self._exec.end_stdin()

                if remote_task in done:
                    error = remote_task.exception()
                    if error is not None:
                        await self._relay_failed(error)
                        return
                    reason = "Process finished" if remote_task.result() is _RemoteEnd.EXITED else "Log stream ended"
                    self._log.info("remote stream finished", reason=reason)
                    await self._channel.close(CLOSE_NORMAL, reason)
                    return
        finally:
            for task in (remote_task, client_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(remote_task, client_task, return_exceptions=True)

    async def _relay_failed(self, error: BaseException) -> None:
        self._log.error("stream relay failed", error=str(error))
        reason = "stdout stream error" if self._mode == SessionMode.TERMINAL else "Log stream error"
        await self._channel.close(CLOSE_INTERNAL_ERROR, reason)

    async def _pump_remote(self) -> _RemoteEnd:
        if self._exec is not None:
            while True:
                event = await self._exec.read()
                if event is None:
                    # Channel closed without a status frame: treated as exit.
                    return _RemoteEnd.EXITED
                if event.stream == ExecStream.EXIT:
                    self._log.info("exec process finished", status=event.status)
                    return _RemoteEnd.EXITED
                if event.data:
                    await self._channel.send(event.data)

        assert self._logs is not None
        while True:
            chunk = await self._logs.read()
            if chunk is None:
                return _RemoteEnd.ENDED
            await self._channel.send(chunk)

    async def _pump_client(self) -> _ClientEnd:
        while True:
            try:
                data = await self._channel.receive()
            except ClientChannelError as exc:
                self._log.warning("client channel error", error=str(exc))
                return _ClientEnd.ERRORED
            if data is None:
                return _ClientEnd.CLOSED
            if self._exec is not None and data:
                await self._exec.write_stdin(data)


async def bridge_terminal(
    client: ClusterClient,
    channel: ClientChannel,
    namespace: str,
    name: str,
    container: str | None = None,
    shell: str | None = None,
) -> StreamSession:
    """Run an interactive tty shell in a pod container until the session ends."""
    session = StreamSession(
        client,
        channel,
        SessionMode.TERMINAL,
        namespace,
        pod=name,
        container=container,
        command=[shell or DEFAULT_SHELL],
    )
    await session.run()
    return session


async def bridge_log_stream(
    client: ClusterClient,
    channel: ClientChannel,
    namespace: str,
    name: str,
    container: str | None = None,
    tail_lines: int = DEFAULT_TAIL_LINES,
) -> StreamSession:
    """Follow a container's log (last *tail_lines* lines first) until the session ends."""
    session = StreamSession(
        client,
        channel,
        SessionMode.LOGS,
        namespace,
        pod=name,
        container=container,
        log_options=LogOptions(follow=True, tail_lines=tail_lines, timestamps=False),
    )
    await session.run()
    return session


async def bridge_deployment_log_stream(
    client: ClusterClient,
    channel: ClientChannel,
    namespace: str,
    deployment: str,
    tail_lines: int = DEFAULT_TAIL_LINES,
) -> StreamSession:
    """Follow the log of the first container of the deployment's first pod."""
    session = StreamSession(
        client,
        channel,
        SessionMode.LOGS,
        namespace,
        deployment=deployment,
        log_options=LogOptions(follow=True, tail_lines=tail_lines, timestamps=False),
    )
    await session.run()
    return session
