"""Application bootstrap for kubedeck.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → K8s client → services → REST

Shutdown is fully graceful: components are stopped in reverse startup order.
Each component's stop error is caught and logged independently so that a
single failure does not prevent the rest from shutting down cleanly.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from kubedeck.config import load_config
from kubedeck.models.config import KubeDeckConfig
from kubedeck.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

    from kubedeck.client.base import ClusterClient
    from kubedeck.services import Services

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class KubeDeckApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already
    stopped) is safe.
    """

    def __init__(self) -> None:
        self.config: KubeDeckConfig | None = None

        self._k8s_client: ClusterClient | None = None
        self._services: Services | None = None
        self._rest_server: object | None = None

        # Background tasks that must be cancelled on shutdown
        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def server_finished(self) -> bool:
        """True once the REST server task has exited on its own (signal or bind failure)."""
        return any(task.done() for task in self._background_tasks)

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        The caller (main()) re-raises this as a non-zero exit.
        """
        # --- 1. Configuration -------------------------------------------
        self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("kubedeck starting", version=_kubedeck_version())

        # --- 3. Kubernetes client ----------------------------------------
        await self._start_k8s_client()

        # --- 4. Services -------------------------------------------------
        self._start_services()

        # --- 5. REST / WebSocket API -------------------------------------
        await self._start_rest()

        self._running = True
        self._log.info("kubedeck started", host=self.config.api.host, port=self.config.api.port)

    # ------------------------------------------------------------------
    # Component startup helpers
    # ------------------------------------------------------------------

    async def _start_k8s_client(self) -> None:
        """Build the kubernetes-asyncio client from in-cluster config or kubeconfig."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting k8s client", in_cluster=self.config.kube.in_cluster)
        try:
            from kubedeck.client.kube import KubernetesClusterClient

            self._k8s_client = await KubernetesClusterClient.connect(self.config.kube)
            info = self._k8s_client.kubeconfig_info()
            self._log.info("k8s client started", origin=info.origin, context=info.current_context)
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    def _start_services(self) -> None:
        assert self._log is not None
        assert self._k8s_client is not None
        from kubedeck.services import build_services

        self._services = build_services(self._k8s_client)
        self._log.info("services started")

    async def _start_rest(self) -> None:
        """Start the uvicorn server for the REST and WebSocket routes."""
        assert self._log is not None
        assert self.config is not None
        assert self._services is not None
        self._log.debug("starting rest api")
        try:
            import uvicorn

            from kubedeck.api import build_app

            fastapi_app = build_app(services=self._services, config=self.config)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host=self.config.api.host,
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            # Never started
            return

        log = self._log or get_logger("app")
        log.info("kubedeck shutting down")

        self._running = False

        if self._rest_server is not None:
            # Let uvicorn finish in-flight requests before cancelling.
            self._rest_server.should_exit = True  # type: ignore[attr-defined]
        if self._background_tasks:
            _, pending = await asyncio.wait(self._background_tasks, timeout=_SHUTDOWN_GRACE_SECONDS)
            for task in pending:
                log.warning("component stop timed out", component=task.get_name(), timeout=_SHUTDOWN_GRACE_SECONDS)
                task.cancel()
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()
        self._rest_server = None
        self._services = None

        await self._stop_k8s_client()
        log.info("kubedeck stopped")

    async def _stop_k8s_client(self) -> None:
        """Close the kubernetes-asyncio ApiClient connection pool."""
        if self._k8s_client is None:
            return
        log = self._log or get_logger("app")
        try:
            await asyncio.wait_for(self._k8s_client.close(), timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component="k8s_client", timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component="k8s_client", error=str(exc))
        self._k8s_client = None


def _kubedeck_version() -> str:
    from kubedeck import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = KubeDeckApp()
    loop = asyncio.get_running_loop()

    shutdown_triggered = False
    shutdown_tasks: list[asyncio.Task[None]] = []

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        shutdown_tasks.append(asyncio.create_task(app.stop(), name="shutdown"))

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        # Block until shutdown is triggered (the server runs as a background task)
        while app.running and not app.server_finished:
            await asyncio.sleep(1)
        if shutdown_tasks:
            await asyncio.gather(*shutdown_tasks)
    except _ComponentError as exc:
        # A mandatory component failed; log and exit non-zero
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        # Ensure stop runs even if start raises or is interrupted
        if app.running:
            await app.stop()
