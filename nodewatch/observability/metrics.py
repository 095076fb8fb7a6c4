"""Prometheus metrics for nodewatch.

Metrics live in the default registry and are only exposed over HTTP when
``start_metrics_server`` is called with a non-zero port.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, start_http_server

watch_events_total = Counter(
    "nodewatch_watch_events_total",
    "Watch events received from the resource source.",
    ["event"],
)

notifications_total = Counter(
    "nodewatch_notifications_total",
    "Notifications dispatched to handlers.",
    ["kind"],
)

handler_errors_total = Counter(
    "nodewatch_handler_errors_total",
    "Handler invocations that raised.",
    ["kind"],
)

watch_restarts_total = Counter(
    "nodewatch_watch_restarts_total",
    "Watch restarts allowed by the retry policy.",
)

mirror_records = Gauge(
    "nodewatch_mirror_records",
    "Records currently held in the resource mirror.",
)

mirror_synced = Gauge(
    "nodewatch_mirror_synced",
    "1 once the resource mirror completed its initial sync.",
)


def start_metrics_server(port: int) -> bool:
    """Serve /metrics on *port*.  Returns False when disabled (port 0)."""
    if port <= 0:
        return False
    start_http_server(port)
    return True
