"""Core data structures for nodewatch."""

from nodewatch.models.config import NodeWatchConfig
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

__all__ = [
    "AddEvent",
    "BookmarkEvent",
    "DeleteEvent",
    "MirrorState",
    "MutationEvent",
    "NodeWatchConfig",
    "Notification",
    "NotificationKind",
    "ResourceIdentity",
    "ResourceRecord",
    "SyncedMarker",
    "UpdateEvent",
    "WatchEvent",
]
