"""Watch restart policies.

The base behavior is to never restart: a broken watch stream ends the sync
task.  ExponentialBackoff restores the reconnect loop of a full informer
without touching the mirror.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod

from nodewatch.errors import WatchStreamError
from nodewatch.models.config import WatchConfig


class RetryPolicy(ABC):
    """Decides whether, and after how long, a broken watch is restarted."""

    @abstractmethod
    def next_delay(self, attempt: int, error: WatchStreamError) -> float | None:
        """Return the delay before restart number *attempt* (0-based), or None to give up."""


class NoRetry(RetryPolicy):
    """Never restart."""

    def next_delay(self, attempt: int, error: WatchStreamError) -> float | None:
        return None


class ExponentialBackoff(RetryPolicy):
    """Doubling delay capped at *maximum*, optionally jittered by [0.5, 1.5).

    ``max_attempts`` of 0 retries forever.
    """

    def __init__(
        self,
        initial: float = 1.0,
        maximum: float = 30.0,
        max_attempts: int = 5,
        jitter: bool = True,
    ) -> None:
        if initial <= 0 or maximum < initial:
            raise ValueError(f"Invalid backoff bounds: initial={initial}, maximum={maximum}")
        if max_attempts < 0:
            raise ValueError(f"max_attempts must be >= 0, got {max_attempts}")
        self.initial = initial
        self.maximum = maximum
        self.max_attempts = max_attempts
        self.jitter = jitter

    def next_delay(self, attempt: int, error: WatchStreamError) -> float | None:
        if self.max_attempts and attempt >= self.max_attempts:
            return None
        delay = min(self.initial * (2**attempt), self.maximum)
        if self.jitter:
            delay *= 0.5 + random.random()  # noqa: S311
        return delay


def build_retry_policy(config: WatchConfig) -> RetryPolicy:
    """Select the retry policy described by *config*."""
    if not config.retry_enabled:
        return NoRetry()
    return ExponentialBackoff(
        initial=config.retry_initial_seconds,
        maximum=config.retry_max_seconds,
        max_attempts=config.retry_max_attempts,
    )
