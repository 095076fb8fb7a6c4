"""Kubernetes Node list/watch source backed by kubernetes-asyncio."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Mapping
from typing import Any

import aiohttp
import structlog
from kubernetes_asyncio import watch
from kubernetes_asyncio.client import CoreV1Api
from kubernetes_asyncio.client.exceptions import ApiException

from nodewatch.collector.source import ResourceSource
from nodewatch.errors import ClusterConnectionError, WatchStreamError
from nodewatch.models.events import (
    AddEvent,
    BookmarkEvent,
    DeleteEvent,
    SyncedMarker,
    UpdateEvent,
    WatchEvent,
)
from nodewatch.models.resources import ResourceRecord

_log = structlog.get_logger(component="collector.node_source")

_HTTP_GONE = 410

_TRANSPORT_ERRORS = (aiohttp.ClientError, OSError, asyncio.TimeoutError)


class KubeNodeSource(ResourceSource):
    """Lists and watches cluster-scoped ``v1.Node`` objects.

    Args:
        api:             CoreV1Api bound to a configured ApiClient.
        label_selector:  Optional label selector applied to list and watch.
        field_selector:  Optional field selector applied to list and watch.
        timeout_seconds: Server-side watch timeout.  None leaves each watch
                         request open until the server closes it.
    """

    def __init__(
        self,
        api: CoreV1Api,
        label_selector: str = "",
        field_selector: str = "",
        timeout_seconds: int | None = None,
    ) -> None:
        self._api = api
        self._label_selector = label_selector
        self._field_selector = field_selector
        self._timeout_seconds = timeout_seconds

    @property
    def kind(self) -> str:
        return "Node"

    def _selector_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if self._label_selector:
            kwargs["label_selector"] = self._label_selector
        if self._field_selector:
            kwargs["field_selector"] = self._field_selector
        return kwargs

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        if isinstance(obj, Mapping):
            return dict(obj)
        serialized = self._api.api_client.sanitize_for_serialization(obj)
        return serialized if isinstance(serialized, dict) else {}

    async def list(self) -> tuple[list[ResourceRecord], str]:
        try:
            result = await self._api.list_node(**self._selector_kwargs())
        except ApiException as exc:
            raise ClusterConnectionError(f"list nodes failed: {exc.status} {exc.reason}") from exc
        except _TRANSPORT_ERRORS as exc:
            raise ClusterConnectionError(f"list nodes failed: {exc}") from exc

        version = str(getattr(result.metadata, "resource_version", None) or "")
        records = [ResourceRecord.from_object(self.kind, self._to_dict(item)) for item in result.items or []]
        _log.debug("nodes_listed", count=len(records), resource_version=version)
        return records, version

    async def watch(self, since: str) -> AsyncIterator[WatchEvent]:
        # A list result is by definition caught up with its own snapshot.
        yield SyncedMarker(version=since)

        version = since
        while True:
            watcher = watch.Watch()
            kwargs = self._selector_kwargs()
            if self._timeout_seconds:
                kwargs["timeout_seconds"] = self._timeout_seconds
            try:
                async with watcher.stream(
                    self._api.list_node,
                    resource_version=version,
                    allow_watch_bookmarks=True,
                    **kwargs,
                ) as stream:
                    async for raw in stream:
                        event = self._convert(raw)
                        if event.version:
                            version = event.version
                        yield event
            except ApiException as exc:
                raise WatchStreamError(
                    f"watch nodes failed: {exc.status} {exc.reason}",
                    expired=exc.status == _HTTP_GONE,
                    status=exc.status,
                ) from exc
            except _TRANSPORT_ERRORS as exc:
                raise WatchStreamError(f"watch nodes failed: {exc}") from exc
            # The server closed the request normally; resume where we left off.
            _log.debug("watch_reopened", resource_version=version)

    def _convert(self, raw: Mapping[str, Any]) -> WatchEvent:
        """Map one raw kubernetes-asyncio watch event onto the WatchEvent union."""
        event_type = str(raw.get("type", ""))
        obj = raw.get("raw_object")
        if not isinstance(obj, Mapping):
            obj = self._to_dict(raw.get("object"))

        if event_type == "ERROR":
            code = obj.get("code")
            raise WatchStreamError(
                f"watch error event: {obj.get('reason', '')}: {obj.get('message', '')}",
                expired=code == _HTTP_GONE,
                status=code if isinstance(code, int) else None,
            )
        if event_type == "BOOKMARK":
            metadata = obj.get("metadata") or {}
            return BookmarkEvent(version=str(metadata.get("resourceVersion") or ""))

        record = ResourceRecord.from_object(self.kind, obj)
        if event_type == "ADDED":
            return AddEvent(record)
        if event_type == "MODIFIED":
            return UpdateEvent(record)
        if event_type == "DELETED":
            return DeleteEvent(record)
        raise WatchStreamError(f"unknown watch event type: {event_type!r}")
