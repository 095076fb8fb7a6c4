"""Broadcast-once cooperative cancellation.

A single StopSignal is created by the process entrypoint and handed to every
blocking call (``start_sync``, ``wait_for_sync``, ``run``).  Once stopped it
stays stopped.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from nodewatch.errors import StopRequested

T = TypeVar("T")


class StopSignal:
    """Cancellation token observed by every suspension point."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def stop(self) -> None:
        """Fire the signal.  Idempotent."""
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    async def guard(self, aw: Awaitable[T]) -> T:
        """Await *aw* unless the signal fires first.

        Raises:
            StopRequested: the signal fired before *aw* completed; *aw* is cancelled.
        """
        if self.is_set():
            if asyncio.iscoroutine(aw):
                aw.close()
            raise StopRequested("stop requested")
        work = asyncio.ensure_future(aw)
        stopper = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, stopper}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            await asyncio.gather(work, return_exceptions=True)
            raise
        finally:
            stopper.cancel()
        if work.done():
            return work.result()
        work.cancel()
        await asyncio.gather(work, return_exceptions=True)
        raise StopRequested("stop requested")

    async def sleep(self, seconds: float) -> bool:
        """Sleep for *seconds*.  Returns True if the signal interrupted the sleep."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except TimeoutError:
            return False
        return True
