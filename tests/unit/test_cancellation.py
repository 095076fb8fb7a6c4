"""Unit tests for StopSignal."""

from __future__ import annotations

import asyncio

import pytest

from nodewatch.cancellation import StopSignal
from nodewatch.errors import StopRequested


class TestStopSignal:
    async def test_stop_is_idempotent(self, stop: StopSignal) -> None:
        assert not stop.is_set()
        stop.stop()
        stop.stop()
        assert stop.is_set()
        await asyncio.wait_for(stop.wait(), timeout=0.1)

    async def test_guard_returns_result(self, stop: StopSignal) -> None:
        async def work() -> int:
            return 7

        assert await stop.guard(work()) == 7

    async def test_guard_propagates_work_exception(self, stop: StopSignal) -> None:
        async def work() -> None:
            raise KeyError("boom")

        with pytest.raises(KeyError):
            await stop.guard(work())

    async def test_guard_when_already_stopped(self, stop: StopSignal) -> None:
        started = False

        async def work() -> None:
            nonlocal started
            started = True

        stop.stop()
        with pytest.raises(StopRequested):
            await stop.guard(work())
        assert not started

    async def test_guard_cancels_work_when_stopped(self, stop: StopSignal) -> None:
        cancelled = asyncio.Event()

        async def work() -> None:
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        asyncio.get_running_loop().call_later(0.01, stop.stop)
        with pytest.raises(StopRequested):
            await stop.guard(work())
        assert cancelled.is_set()

    async def test_guard_cancels_work_when_caller_cancelled(self, stop: StopSignal) -> None:
        cancelled = asyncio.Event()

        async def work() -> None:
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        task = asyncio.create_task(stop.guard(work()))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.wait_for(cancelled.wait(), timeout=1)

    async def test_sleep_times_out(self, stop: StopSignal) -> None:
        assert await stop.sleep(0.01) is False

    async def test_sleep_interrupted(self, stop: StopSignal) -> None:
        asyncio.get_running_loop().call_later(0.01, stop.stop)
        assert await stop.sleep(5) is True
