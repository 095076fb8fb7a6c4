"""In-memory mirror of one remote resource collection.

The mirror is fed by a single background task that lists the collection once
and then applies watch events as they arrive.  Every applied mutation is
dispatched to the registered handlers before the next event is applied, so
handlers never run concurrently and always observe events in application
order.

Reads (``get`` / ``list``) never touch the network and may be issued from any
thread: the table is guarded by a ``threading.Lock`` and records are
immutable, so each identity is swapped atomically.

State model (one-directional)::

    UNINITIALIZED --start_sync--> SYNCING --list applied + SyncedMarker--> SYNCED

Handler registration must happen before ``start_sync``.  A handler added
later only sees events applied after its registration.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator, Callable

import structlog

from nodewatch.cache.handlers import Handler, HandlerRegistry, handler_name
from nodewatch.cancellation import StopSignal
from nodewatch.collector.retry import NoRetry, RetryPolicy
from nodewatch.collector.source import ResourceSource
from nodewatch.errors import ClusterConnectionError, StopRequested, WatchStreamError
from nodewatch.models.events import (
    AddEvent,
    BookmarkEvent,
    DeleteEvent,
    MutationEvent,
    Notification,
    NotificationKind,
    SyncedMarker,
    UpdateEvent,
    WatchEvent,
)
from nodewatch.models.resources import MirrorState, ResourceIdentity, ResourceRecord
from nodewatch.observability.metrics import (
    mirror_records,
    mirror_synced,
    notifications_total,
    watch_events_total,
    watch_restarts_total,
)

_log = structlog.get_logger(component="cache.resource_mirror")

_EVENT_LABELS: dict[type, str] = {
    AddEvent: "added",
    UpdateEvent: "modified",
    DeleteEvent: "deleted",
    BookmarkEvent: "bookmark",
    SyncedMarker: "synced",
}


async def _next_event(stream: AsyncIterator[WatchEvent]) -> WatchEvent | None:
    try:
        return await anext(stream)
    except StopAsyncIteration:
        return None


class ResourceMirror:
    """Eventually consistent local copy of a ResourceSource's collection."""

    def __init__(self, source: ResourceSource, retry_policy: RetryPolicy | None = None) -> None:
        self._source = source
        self._retry_policy = retry_policy or NoRetry()
        self._handlers = HandlerRegistry()

        # identity -> record; replaced wholesale on list, per key on events
        self._store: dict[ResourceIdentity, ResourceRecord] = {}
        self._lock = threading.Lock()

        # Serializes apply/relist so dispatch is strictly one event at a time
        self._apply_lock = asyncio.Lock()

        self._state = MirrorState.UNINITIALIZED
        self._listed = False
        self._synced = asyncio.Event()
        self._sync_task: asyncio.Task[None] | None = None
        self._sync_error: BaseException | None = None
        self._last_version = ""
        self._retry_attempt = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def kind(self) -> str:
        return self._source.kind

    @property
    def state(self) -> MirrorState:
        return self._state

    @property
    def has_synced(self) -> bool:
        return self._state is MirrorState.SYNCED

    @property
    def sync_task(self) -> asyncio.Task[None] | None:
        return self._sync_task

    @property
    def sync_error(self) -> BaseException | None:
        """Exception that ended the sync task, if it failed."""
        return self._sync_error

    @property
    def last_version(self) -> str:
        """Most recent resume version observed from list, events or bookmarks."""
        return self._last_version

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    # ------------------------------------------------------------------
    # Handler registration
    # ------------------------------------------------------------------

    def on_added(self, handler: Handler) -> Callable[[], None]:
        return self._register(NotificationKind.ADDED, handler)

    def on_updated(self, handler: Handler) -> Callable[[], None]:
        return self._register(NotificationKind.UPDATED, handler)

    def on_deleted(self, handler: Handler) -> Callable[[], None]:
        return self._register(NotificationKind.DELETED, handler)

    def _register(self, kind: NotificationKind, handler: Handler) -> Callable[[], None]:
        if self._sync_task is not None:
            _log.warning(
                "handler_registered_late",
                kind=self.kind,
                notification=kind.value,
                handler=handler_name(handler),
                state=self._state.value,
            )
        return self._handlers.register(kind, handler)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, identity: ResourceIdentity | str) -> ResourceRecord | None:
        """Return the current record for *identity*, or None."""
        if isinstance(identity, str):
            identity = ResourceIdentity.parse(identity)
        with self._lock:
            return self._store.get(identity)

    def list(self) -> list[ResourceRecord]:
        """Snapshot of every record currently held.  Order is unspecified."""
        with self._lock:
            return list(self._store.values())

    # ------------------------------------------------------------------
    # Sync lifecycle
    # ------------------------------------------------------------------

    def start_sync(self, stop: StopSignal) -> asyncio.Task[None]:
        """Launch the list-then-watch task.  Must be called from a running loop."""
        if self._sync_task is not None:
            raise RuntimeError(f"{self.kind} mirror sync already started")
        self._state = MirrorState.SYNCING
        task = asyncio.create_task(self._run_sync(stop), name=f"mirror-sync-{self.kind.lower()}")
        task.add_done_callback(self._on_sync_done)
        self._sync_task = task
        _log.info("mirror_sync_started", kind=self.kind)
        return task

    async def wait_for_sync(self, stop: StopSignal) -> bool:
        """Block until SYNCED.

        Returns False when *stop* fires first or the sync task ends without
        reaching SYNCED.
        """
        if self._synced.is_set():
            return True
        synced = asyncio.ensure_future(self._synced.wait())
        stopped = asyncio.ensure_future(stop.wait())
        waiters: set[asyncio.Future[object]] = {synced, stopped}
        if self._sync_task is not None:
            waiters.add(self._sync_task)
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            synced.cancel()
            stopped.cancel()
        if not self._synced.is_set():
            _log.warning(
                "mirror_sync_wait_failed",
                kind=self.kind,
                stopped=stop.is_set(),
                error=str(self._sync_error) if self._sync_error else None,
            )
        return self._synced.is_set()

    def _on_sync_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            _log.info("mirror_sync_cancelled", kind=self.kind)
            return
        exc = task.exception()
        if exc is not None:
            self._sync_error = exc
            _log.error("mirror_sync_failed", kind=self.kind, error=str(exc), error_type=type(exc).__name__)
        else:
            _log.info("mirror_sync_stopped", kind=self.kind, records=len(self))

    async def _run_sync(self, stop: StopSignal) -> None:
        try:
            version = await self._relist(stop)
            relist = False
            while True:
                try:
                    if relist:
                        version = await self._relist_after_expiry(stop)
                        relist = False
                    await self._watch(stop, version)
                    return
                except WatchStreamError as exc:
                    delay = self._retry_policy.next_delay(self._retry_attempt, exc)
                    if delay is None:
                        raise
                    self._retry_attempt += 1
                    watch_restarts_total.inc()
                    _log.warning(
                        "watch_restarting",
                        kind=self.kind,
                        attempt=self._retry_attempt,
                        delay_seconds=round(delay, 3),
                        expired=exc.expired,
                        error=str(exc),
                    )
                    if await stop.sleep(delay):
                        return
                    relist = exc.expired
                    version = self._last_version
        except StopRequested:
            return

    async def _watch(self, stop: StopSignal, since: str) -> None:
        """Apply events from one watch stream until *stop* fires."""
        stream = self._source.watch(since)
        try:
            while True:
                event = await stop.guard(_next_event(stream))
                if event is None:
                    raise WatchStreamError(f"{self.kind} watch stream ended unexpectedly")
                await self.apply(event)
                if not isinstance(event, SyncedMarker):
                    self._retry_attempt = 0
        except StopRequested:
            return
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _relist_after_expiry(self, stop: StopSignal) -> str:
        """Relist after an expired watch.  A failed list is retried like a broken watch."""
        try:
            return await self._relist(stop)
        except ClusterConnectionError as exc:
            raise WatchStreamError(f"{self.kind} relist failed: {exc}", expired=True) from exc

    async def _relist(self, stop: StopSignal) -> str:
        """Replace the table with a fresh list.

        Before SYNCED the swap is silent.  Afterwards the difference against
        the previous table is dispatched as ADDED / UPDATED / DELETED.
        """
        records, version = await stop.guard(self._source.list())
        table = {record.identity: record for record in records}

        async with self._apply_lock:
            with self._lock:
                previous = self._store
                self._store = table
            mirror_records.set(len(table))
            self._last_version = version
            self._listed = True

            if not self._synced.is_set():
                _log.info("mirror_listed", kind=self.kind, records=len(table), resource_version=version)
                return version

            _log.info(
                "mirror_relisted",
                kind=self.kind,
                records=len(table),
                previous_records=len(previous),
                resource_version=version,
            )
            for identity in sorted(table):
                old = previous.get(identity)
                if old is None:
                    await self._dispatch(Notification(NotificationKind.ADDED, table[identity]))
                else:
                    await self._dispatch(Notification(NotificationKind.UPDATED, table[identity], old))
            for identity in sorted(set(previous) - set(table)):
                await self._dispatch(Notification(NotificationKind.DELETED, previous[identity]))
        return version

    # ------------------------------------------------------------------
    # Event application
    # ------------------------------------------------------------------

    async def apply(self, event: WatchEvent) -> Notification | None:
        """Apply one watch event and dispatch the resulting notification.

        Returns the dispatched notification, or None when the event did not
        mutate the mirror (markers, bookmarks, deletes of unknown identities).
        """
        async with self._apply_lock:
            watch_events_total.labels(event=_EVENT_LABELS[type(event)]).inc()

            if isinstance(event, SyncedMarker):
                self._mark_synced(event.version)
                return None
            if isinstance(event, BookmarkEvent):
                if event.version:
                    self._last_version = event.version
                return None

            notification = self._mutate(event)
            if event.version:
                self._last_version = event.version
            if notification is None:
                _log.debug(
                    "delete_of_unknown_resource_ignored",
                    kind=self.kind,
                    identity=str(event.record.identity),
                    resource_version=event.version,
                )
                return None
            await self._dispatch(notification)
            return notification

    def _mutate(self, event: MutationEvent) -> Notification | None:
        identity = event.record.identity
        with self._lock:
            old = self._store.get(identity)
            if isinstance(event, DeleteEvent):
                if old is None:
                    return None
                del self._store[identity]
                notification = Notification(NotificationKind.DELETED, old)
            else:
                # Add and Update are both insert-or-replace; a redelivered add
                # of a known identity is reported as an update.
                self._store[identity] = event.record
                if old is None:
                    notification = Notification(NotificationKind.ADDED, event.record)
                else:
                    notification = Notification(NotificationKind.UPDATED, event.record, old)
            size = len(self._store)
        mirror_records.set(size)
        return notification

    def _mark_synced(self, version: str) -> None:
        if self._synced.is_set():
            return
        if not self._listed:
            _log.debug("synced_marker_before_list_ignored", kind=self.kind, resource_version=version)
            return
        self._state = MirrorState.SYNCED
        self._synced.set()
        mirror_synced.set(1)
        _log.info("mirror_synced", kind=self.kind, records=len(self), resource_version=version)

    async def _dispatch(self, notification: Notification) -> None:
        notifications_total.labels(kind=notification.kind.value).inc()
        await self._handlers.dispatch(notification)
