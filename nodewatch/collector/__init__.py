"""Collector package for nodewatch.

Provides the list/watch contract the resource mirror consumes, its
Kubernetes implementation, and the watch restart policies.

Submodules
----------
source       -- ResourceSource: list + watch contract.
node_source  -- KubeNodeSource: v1.Node list/watch over kubernetes-asyncio.
retry        -- RetryPolicy seam: NoRetry (default) and ExponentialBackoff.
"""

from nodewatch.collector.node_source import KubeNodeSource
from nodewatch.collector.retry import ExponentialBackoff, NoRetry, RetryPolicy, build_retry_policy
from nodewatch.collector.source import ResourceSource

__all__ = [
    "ExponentialBackoff",
    "KubeNodeSource",
    "NoRetry",
    "ResourceSource",
    "RetryPolicy",
    "build_retry_policy",
]
