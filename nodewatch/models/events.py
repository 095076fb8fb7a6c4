"""Watch events and mirror notifications.

Watch events form a tagged union (one frozen dataclass per variant) produced
by a ResourceSource.  Notifications describe a single mirror mutation and are
handed to registered handlers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from nodewatch.models.resources import ResourceIdentity, ResourceRecord


@dataclass(frozen=True)
class AddEvent:
    record: ResourceRecord

    @property
    def version(self) -> str:
        return self.record.version


@dataclass(frozen=True)
class UpdateEvent:
    record: ResourceRecord

    @property
    def version(self) -> str:
        return self.record.version


@dataclass(frozen=True)
class DeleteEvent:
    record: ResourceRecord

    @property
    def version(self) -> str:
        return self.record.version


@dataclass(frozen=True)
class BookmarkEvent:
    """Progress notification from the server; advances the resume version only."""

    version: str


@dataclass(frozen=True)
class SyncedMarker:
    """Boundary marker: the watch has caught up with the listed snapshot."""

    version: str


WatchEvent = AddEvent | UpdateEvent | DeleteEvent | BookmarkEvent | SyncedMarker
MutationEvent = AddEvent | UpdateEvent | DeleteEvent


class NotificationKind(StrEnum):
    """Kind of mirror mutation a notification describes."""

    ADDED = "added"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class Notification:
    """One applied mirror mutation.

    ``record`` is the new state for ADDED/UPDATED and the last known state for
    DELETED.  ``old_record`` is only set for UPDATED.
    """

    kind: NotificationKind
    record: ResourceRecord
    old_record: ResourceRecord | None = None

    @property
    def identity(self) -> ResourceIdentity:
        return self.record.identity

    @property
    def version(self) -> str:
        return self.record.version

    @property
    def old_version(self) -> str | None:
        if self.old_record is None:
            return None
        return self.old_record.version

    @property
    def changed(self) -> bool:
        """False for an UPDATED that redelivered the version already held."""
        return self.old_record is None or self.old_record.version != self.record.version

    def describe(self) -> str:
        label = f"[{self.record.kind.lower()} {self.kind.value}]"
        if self.kind is NotificationKind.UPDATED:
            return (
                f"{label} {self.identity} old resource version: {self.old_version}"
                f"\tnew resource version: {self.version}"
            )
        return f"{label} {self.identity} resource version: {self.version}"
