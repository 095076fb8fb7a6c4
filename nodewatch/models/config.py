"""Configuration data structures."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_KUBECONFIG = os.path.join("~", ".kube", "config")


@dataclass
class KubeConfig:
    """Kubernetes client configuration.

    ``in_cluster`` of None means auto-detect from KUBERNETES_SERVICE_HOST.
    """

    kubeconfig: str = DEFAULT_KUBECONFIG
    context: str = ""
    in_cluster: bool | None = None


@dataclass
class WatchConfig:
    """Node watch configuration."""

    label_selector: str = ""
    field_selector: str = ""
    timeout_seconds: int = 0
    retry_enabled: bool = False
    retry_initial_seconds: float = 1.0
    retry_max_seconds: float = 30.0
    retry_max_attempts: int = 5


@dataclass
class MetricsConfig:
    """Prometheus exposition configuration.  Port 0 disables the HTTP server."""

    port: int = 0


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "json"


@dataclass
class NodeWatchConfig:
    """Top-level nodewatch configuration."""

    kube: KubeConfig = field(default_factory=KubeConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    log: LogConfig = field(default_factory=LogConfig)
