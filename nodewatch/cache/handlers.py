"""Notification handler registry.

Handlers are plain callables or coroutine functions taking a Notification.
Dispatch is sequential in registration order; a failing handler is logged
and counted, and never stops the handlers after it.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable

import structlog

from nodewatch.errors import HandlerError
from nodewatch.models.events import Notification, NotificationKind
from nodewatch.observability.metrics import handler_errors_total

_log = structlog.get_logger(component="cache.handlers")

Handler = Callable[[Notification], Awaitable[None] | None]


def handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


class HandlerRegistry:
    """Ordered handlers per NotificationKind."""

    def __init__(self) -> None:
        self._handlers: dict[NotificationKind, list[Handler]] = {kind: [] for kind in NotificationKind}

    def register(self, kind: NotificationKind, handler: Handler) -> Callable[[], None]:
        """Append *handler* for *kind*.  Returns a callable that unregisters it."""
        handlers = self._handlers[kind]
        handlers.append(handler)

        def remove() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return remove

    def count(self, kind: NotificationKind) -> int:
        return len(self._handlers[kind])

    async def dispatch(self, notification: Notification) -> list[HandlerError]:
        """Invoke every handler for ``notification.kind`` one after another.

        Returns the failures, which have already been logged.
        """
        failures: list[HandlerError] = []
        for handler in list(self._handlers[notification.kind]):
            try:
                result = handler(notification)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:  # noqa: BLE001
                error = HandlerError(handler_name(handler), exc)
                failures.append(error)
                handler_errors_total.labels(kind=notification.kind.value).inc()
                _log.error(
                    "handler_failed",
                    handler=error.handler,
                    notification=notification.kind.value,
                    identity=str(notification.identity),
                    resource_version=notification.version,
                    error=str(exc),
                    exc_info=exc,
                )
        return failures
