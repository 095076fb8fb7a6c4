"""Application bootstrap for nodewatch.

Wires components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → metrics → K8s client → node source
              → controller

SIGINT / SIGTERM fire the process-wide StopSignal.  The exit status is 0
on clean shutdown and 1 on any fatal NodeWatchError (connection failure,
sync failure, unrecoverable watch error).
"""

from __future__ import annotations

import asyncio
import os
import signal
from typing import TYPE_CHECKING

from nodewatch.cancellation import StopSignal
from nodewatch.collector.node_source import KubeNodeSource
from nodewatch.collector.retry import build_retry_policy
from nodewatch.config import load_config
from nodewatch.controller.watch_controller import WatchController
from nodewatch.errors import ClusterConnectionError, ConfigError, NodeWatchError
from nodewatch.models.config import NodeWatchConfig
from nodewatch.observability.logging import get_logger, setup_logging
from nodewatch.observability.metrics import start_metrics_server

if TYPE_CHECKING:
    import structlog
    from kubernetes_asyncio.client import ApiClient

_EXIT_OK = 0
_EXIT_FAILURE = 1


class NodeWatchApp:
    """Application root.  Owns the K8s client and the controller.

    ``stop()`` is safe to call on an app that never started.
    """

    def __init__(self, config: NodeWatchConfig, stop: StopSignal | None = None) -> None:
        self.config = config
        self.stop_signal = stop or StopSignal()
        self._api_client: ApiClient | None = None
        self._controller: WatchController | None = None
        self._log: structlog.stdlib.BoundLogger = get_logger("app")

    @property
    def controller(self) -> WatchController | None:
        return self._controller

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Build every component.

        Raises:
            ConfigError: the metrics port cannot be bound.
            ClusterConnectionError: the K8s client cannot be configured.
        """
        self._log.info("nodewatch starting", version=_nodewatch_version())

        port = self.config.metrics.port
        try:
            started = start_metrics_server(port)
        except OSError as exc:
            raise ConfigError(f"cannot serve metrics on port {port}: {exc}") from exc
        if started:
            self._log.info("metrics server started", port=port)

        await self._start_k8s_client()
        self._start_controller()

    async def _start_k8s_client(self) -> None:
        """Initialise the kubernetes-asyncio client from in-cluster config or kubeconfig."""
        self._log.debug("starting k8s client")
        kube = self.config.kube
        in_cluster = kube.in_cluster
        if in_cluster is None:
            in_cluster = bool(os.environ.get("KUBERNETES_SERVICE_HOST"))

        try:
            import kubernetes_asyncio.config as k8s_config
            from kubernetes_asyncio import client as k8s_client

            if in_cluster:
                # load_incluster_config() is synchronous in kubernetes-asyncio
                k8s_config.load_incluster_config()
                self._log.info("k8s client configured from in-cluster service account")
            else:
                kubeconfig = os.path.expanduser(kube.kubeconfig)
                await k8s_config.load_kube_config(config_file=kubeconfig, context=kube.context or None)
                self._log.info("k8s client configured from kubeconfig", path=kubeconfig, context=kube.context or None)

            self._api_client = k8s_client.ApiClient()
        except Exception as exc:
            raise ClusterConnectionError(f"cannot configure kubernetes client: {exc}") from exc

    def _start_controller(self) -> None:
        from kubernetes_asyncio import client as k8s_client

        watch = self.config.watch
        source = KubeNodeSource(
            k8s_client.CoreV1Api(self._api_client),
            label_selector=watch.label_selector,
            field_selector=watch.field_selector,
            timeout_seconds=watch.timeout_seconds or None,
        )
        self._controller = WatchController(source, retry_policy=build_retry_policy(watch))
        self._log.info(
            "controller created",
            kind=source.kind,
            label_selector=watch.label_selector or None,
            watch_retry=watch.retry_enabled,
        )

    # ------------------------------------------------------------------
    # Run / shutdown
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Run the controller until the stop signal fires."""
        assert self._controller is not None
        self._log.info("starting informer")
        await self._controller.run(self.stop_signal)

    def request_stop(self) -> None:
        if not self.stop_signal.is_set():
            self._log.info("shutdown requested")
        self.stop_signal.stop()

    async def stop(self) -> None:
        """Close the kubernetes-asyncio ApiClient connection pool."""
        self.stop_signal.stop()
        if self._api_client is None:
            return
        try:
            await self._api_client.close()
        except Exception as exc:
            self._log.debug("k8s client close raised (non-fatal)", error=str(exc))
        self._api_client = None
        self._log.info("nodewatch stopped")


def _nodewatch_version() -> str:
    from nodewatch import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: NodeWatchConfig | None = None) -> int:
    """Create the app, register OS signals, run until shutdown.  Returns the exit status."""
    config = config or load_config()
    setup_logging(config.log.level, config.log.format)

    app = NodeWatchApp(config)
    loop = asyncio.get_running_loop()
    signals = (signal.SIGTERM, signal.SIGINT)
    for sig in signals:
        loop.add_signal_handler(sig, app.request_stop)

    try:
        await app.start()
        await app.run()
    except NodeWatchError as exc:
        log = get_logger("app")
        log.critical(
            "fatal error",
            error=str(exc),
            error_type=type(exc).__name__,
            cause=str(exc.__cause__) if exc.__cause__ else None,
        )
        return _EXIT_FAILURE
    finally:
        for sig in signals:
            loop.remove_signal_handler(sig)
        await app.stop()
    return _EXIT_OK
