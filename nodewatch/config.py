"""Configuration loading from environment variables."""

from __future__ import annotations

import os
from dataclasses import replace
from typing import Any

from nodewatch.errors import ConfigError
from nodewatch.models.config import (
    DEFAULT_KUBECONFIG,
    KubeConfig,
    LogConfig,
    MetricsConfig,
    NodeWatchConfig,
    WatchConfig,
)

_LOG_LEVELS = {"debug", "info", "warning", "error"}
_LOG_FORMATS = {"json", "console"}


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"NODEWATCH_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_optional_bool(key: str) -> bool | None:
    val = _env(key, "")
    if not val:
        return None
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = _env(key, str(default))
    try:
        val = int(raw)
    except ValueError as exc:
        raise ConfigError(f"NODEWATCH_{key} must be an integer, got {raw!r}") from exc
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float) -> float:
    raw = _env(key, str(default))
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"NODEWATCH_{key} must be a number, got {raw!r}") from exc


def _validate_log_level(value: str) -> str:
    if value.lower() not in _LOG_LEVELS:
        raise ConfigError(f"Invalid log level: {value}. Must be one of {sorted(_LOG_LEVELS)}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    if value.lower() not in _LOG_FORMATS:
        raise ConfigError(f"Invalid log format: {value}. Must be one of {sorted(_LOG_FORMATS)}")
    return value.lower()


def _validate_backoff(initial: float, maximum: float) -> None:
    if initial <= 0:
        raise ConfigError(f"Watch retry initial delay must be > 0, got {initial}")
    if maximum < initial:
        raise ConfigError(f"Watch retry max delay {maximum} is below initial delay {initial}")


def load_config() -> NodeWatchConfig:
    """Load configuration from NODEWATCH_* environment variables."""
    watch = WatchConfig(
        label_selector=_env("LABEL_SELECTOR", ""),
        field_selector=_env("FIELD_SELECTOR", ""),
        timeout_seconds=_env_int("WATCH_TIMEOUT", 0, min_val=0),
        retry_enabled=_env_bool("WATCH_RETRY_ENABLED", False),
        retry_initial_seconds=_env_float("WATCH_RETRY_INITIAL", 1.0),
        retry_max_seconds=_env_float("WATCH_RETRY_MAX", 30.0),
        retry_max_attempts=_env_int("WATCH_RETRY_MAX_ATTEMPTS", 5, min_val=0, max_val=100),
    )
    _validate_backoff(watch.retry_initial_seconds, watch.retry_max_seconds)
    return NodeWatchConfig(
        kube=KubeConfig(
            kubeconfig=_env("KUBECONFIG", DEFAULT_KUBECONFIG),
            context=_env("CONTEXT", ""),
            in_cluster=_env_optional_bool("IN_CLUSTER"),
        ),
        watch=watch,
        metrics=MetricsConfig(
            port=_env_int("METRICS_PORT", 0, min_val=0, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "json")),
        ),
    )


def apply_overrides(config: NodeWatchConfig, **overrides: Any) -> NodeWatchConfig:
    """Return a copy of *config* with non-None command-line overrides applied.

    Recognised keys: kubeconfig, context, in_cluster, label_selector,
    field_selector, watch_retry, metrics_port, log_level, log_format.
    """
    kube = config.kube
    watch = config.watch
    metrics = config.metrics
    log = config.log

    if overrides.get("kubeconfig") is not None:
        kube = replace(kube, kubeconfig=overrides["kubeconfig"])
    if overrides.get("context") is not None:
        kube = replace(kube, context=overrides["context"])
    if overrides.get("in_cluster") is not None:
        kube = replace(kube, in_cluster=overrides["in_cluster"])
    if overrides.get("label_selector") is not None:
        watch = replace(watch, label_selector=overrides["label_selector"])
    if overrides.get("field_selector") is not None:
        watch = replace(watch, field_selector=overrides["field_selector"])
    if overrides.get("watch_retry") is not None:
        watch = replace(watch, retry_enabled=overrides["watch_retry"])
    if overrides.get("metrics_port") is not None:
        port = int(overrides["metrics_port"])
        if not 0 <= port <= 65535:
            raise ConfigError(f"Invalid metrics port: {port}")
        metrics = replace(metrics, port=port)
    if overrides.get("log_level") is not None:
        log = replace(log, level=_validate_log_level(overrides["log_level"]))
    if overrides.get("log_format") is not None:
        log = replace(log, format=_validate_log_format(overrides["log_format"]))

    return replace(config, kube=kube, watch=watch, metrics=metrics, log=log)
