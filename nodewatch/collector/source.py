"""Contract the resource mirror requires from an orchestrator client."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from nodewatch.models.events import WatchEvent
from nodewatch.models.resources import ResourceRecord


class ResourceSource(ABC):
    """List/watch access to one resource kind on the authoritative store."""

    @property
    @abstractmethod
    def kind(self) -> str:
        """Resource kind served by this source, e.g. ``Node``."""

    @abstractmethod
    async def list(self) -> tuple[list[ResourceRecord], str]:
        """Return every current resource plus the snapshot version.

        Raises:
            ClusterConnectionError: the store could not be reached.
        """

    @abstractmethod
    def watch(self, since: str) -> AsyncIterator[WatchEvent]:
        """Stream events that happened after the *since* snapshot version.

        The first item is always ``SyncedMarker(since)``.  The stream does not
        end on its own; it raises WatchStreamError when it breaks.
        """
