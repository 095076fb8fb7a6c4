"""Exception taxonomy for nodewatch.

Startup failures (ClusterConnectionError, SyncTimeoutError) are fatal and end
the process with a non-zero exit.  WatchStreamError ends the background sync
task and is surfaced by WatchController.run.  Handler failures are contained
per event and only ever logged.
"""

from __future__ import annotations


class NodeWatchError(Exception):
    """Base class for nodewatch errors."""


class ConfigError(NodeWatchError, ValueError):
    """Raised when a configuration value is invalid."""


class ClusterConnectionError(NodeWatchError):
    """Raised when the API server cannot be reached or the client cannot be configured."""


class SyncTimeoutError(NodeWatchError):
    """Raised when the readiness barrier does not clear before cancellation."""


class WatchStreamError(NodeWatchError):
    """Raised when the incremental watch stream breaks.

    ``expired`` is set when the server reports the resume version is too old
    (HTTP 410 Gone); only a fresh list can recover from that.
    """

    def __init__(self, message: str, *, expired: bool = False, status: int | None = None) -> None:
        super().__init__(message)
        self.expired = expired
        self.status = status


class HandlerError(NodeWatchError):
    """A registered notification handler raised.  Logged, never propagated."""

    def __init__(self, handler: str, cause: BaseException) -> None:
        super().__init__(f"Handler '{handler}' failed: {cause}")
        self.handler = handler
        self.cause = cause


class StopRequested(NodeWatchError):
    """Raised by StopSignal.guard when the stop signal wins the race."""
