"""Cache layer for nodewatch.

Provides the in-memory resource mirror backed by a list/watch source, and
the ordered notification handler registry it dispatches through.

Submodules:
    handlers         -- HandlerRegistry: ordered, failure-isolated dispatch.
    resource_mirror  -- ResourceMirror: list-then-watch cache with a sync barrier.
"""

from nodewatch.cache.handlers import Handler, HandlerRegistry
from nodewatch.cache.resource_mirror import ResourceMirror

__all__ = ["Handler", "HandlerRegistry", "ResourceMirror"]
