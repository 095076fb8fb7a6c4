"""WatchController: runs one ResourceMirror from startup to shutdown.

Lifecycle::

    CREATED --run()--> WAITING_FOR_SYNC --synced--> RUNNING --stop--> STOPPED
                              |
                              +--barrier failed--> STOPPED (error)

The controller only observes.  Its default handlers write one structured log
line per mirror mutation and take no action on the resource.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum

import structlog

from nodewatch.cache.resource_mirror import ResourceMirror
from nodewatch.cancellation import StopSignal
from nodewatch.collector.retry import RetryPolicy
from nodewatch.collector.source import ResourceSource
from nodewatch.errors import SyncTimeoutError
from nodewatch.models.events import Notification

_log = structlog.get_logger(component="controller")


class ControllerState(StrEnum):
    """WatchController lifecycle."""

    CREATED = "created"
    WAITING_FOR_SYNC = "waiting_for_sync"
    RUNNING = "running"
    STOPPED = "stopped"


class WatchController:
    """Owns a ResourceMirror and provides the process run/stop contract.

    Args:
        source:       List/watch source for the observed kind.
        retry_policy: Watch restart policy; defaults to never restarting.
    """

    def __init__(self, source: ResourceSource, retry_policy: RetryPolicy | None = None) -> None:
        self._mirror = ResourceMirror(source, retry_policy=retry_policy)
        self._state = ControllerState.CREATED
        self._error: BaseException | None = None

        prefix = source.kind.lower()
        self._added_event = f"{prefix}_added"
        self._updated_event = f"{prefix}_updated"
        self._deleted_event = f"{prefix}_deleted"

        self._mirror.on_added(self._log_added)
        self._mirror.on_updated(self._log_updated)
        self._mirror.on_deleted(self._log_deleted)

    @property
    def mirror(self) -> ResourceMirror:
        return self._mirror

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def error(self) -> BaseException | None:
        """Error that stopped the controller, if any."""
        return self._error

    # ------------------------------------------------------------------
    # Default handlers
    # ------------------------------------------------------------------

    def _log_added(self, notification: Notification) -> None:
        _log.info(
            self._added_event,
            identity=str(notification.identity),
            resource_version=notification.version,
            description=notification.describe(),
        )

    def _log_updated(self, notification: Notification) -> None:
        _log.info(
            self._updated_event,
            identity=str(notification.identity),
            old_resource_version=notification.old_version,
            new_resource_version=notification.version,
            changed=notification.changed,
            description=notification.describe(),
        )

    def _log_deleted(self, notification: Notification) -> None:
        _log.info(
            self._deleted_event,
            identity=str(notification.identity),
            resource_version=notification.version,
            description=notification.describe(),
        )

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self, stop: StopSignal) -> None:
        """Start syncing, wait for the barrier, then block until *stop* fires.

        Raises:
            SyncTimeoutError: the initial sync did not complete before *stop*
                fired or the sync task failed first.
            WatchStreamError: the watch broke after sync and the retry policy
                gave up.
        """
        if self._state is not ControllerState.CREATED:
            raise RuntimeError(f"controller cannot run from state {self._state.value}")

        self._state = ControllerState.WAITING_FOR_SYNC
        sync_task = self._mirror.sync_task or self._mirror.start_sync(stop)
        try:
            _log.info("waiting_for_cache_sync", kind=self._mirror.kind)
            if not await self._mirror.wait_for_sync(stop):
                cause = self._mirror.sync_error
                error = SyncTimeoutError(f"failed to wait for {self._mirror.kind} cache to sync")
                self._error = error
                if cause is not None:
                    raise error from cause
                raise error

            self._state = ControllerState.RUNNING
            _log.info("controller_running", kind=self._mirror.kind, records=len(self._mirror))

            stopped = asyncio.ensure_future(stop.wait())
            try:
                await asyncio.wait({stopped, sync_task}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                stopped.cancel()

            if not stop.is_set() and sync_task.done() and not sync_task.cancelled():
                exc = sync_task.exception()
                if exc is not None:
                    self._error = exc
                    raise exc
        finally:
            self._state = ControllerState.STOPPED
            if not stop.is_set() and not sync_task.done():
                sync_task.cancel()
            await asyncio.gather(sync_task, return_exceptions=True)
            _log.info("controller_stopped", kind=self._mirror.kind, error=str(self._error) if self._error else None)
