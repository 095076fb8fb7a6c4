"""Cross-thread reads of ResourceMirror.

``get`` and ``list`` are called from a plain thread while the sync task
applies a burst of events and then swaps in a relisted table.  Every
snapshot must be one whole table, never a mix of the two.
"""

from __future__ import annotations

import threading

from nodewatch.cache.resource_mirror import ResourceMirror
from nodewatch.cancellation import StopSignal
from nodewatch.collector.retry import ExponentialBackoff
from nodewatch.errors import WatchStreamError

from tests.fakes import ScriptedSource, make_record, update, wait_until

_SIZE = 50
_OLD = frozenset(f"old-{i}" for i in range(_SIZE))
_NEW = frozenset(f"new-{i}" for i in range(_SIZE))


class _Reader(threading.Thread):
    def __init__(self, mirror: ResourceMirror) -> None:
        super().__init__(daemon=True)
        self._mirror = mirror
        self.done = threading.Event()
        self.errors: list[BaseException] = []
        self.snapshots = 0
        self.tables: set[frozenset[str]] = set()

    def run(self) -> None:
        try:
            while not self.done.is_set():
                snapshot = self._mirror.list()
                names = frozenset(r.name for r in snapshot)
                assert len(names) == len(snapshot), "duplicate identity in snapshot"
                assert names in (_OLD, _NEW), f"partial table of {len(names)} records"
                self.tables.add(names)
                for name in ("old-0", "new-0", "old-49"):
                    record = self._mirror.get(name)
                    assert record is None or record.name == name
                self.snapshots += 1
        except BaseException as exc:  # noqa: BLE001
            self.errors.append(exc)


class TestCrossThreadReads:
    async def test_reads_see_whole_tables_during_apply_and_relist(self, stop: StopSignal) -> None:
        source = ScriptedSource([make_record(name, "1") for name in sorted(_OLD)], version="1")
        policy = ExponentialBackoff(initial=0.01, maximum=0.01, max_attempts=0, jitter=False)
        mirror = ResourceMirror(source, retry_policy=policy)
        mirror.start_sync(stop)
        await mirror.wait_for_sync(stop)

        reader = _Reader(mirror)
        reader.start()
        try:
            for round_ in range(2, 6):
                source.push(*(update(f"old-{i}", str(round_)) for i in range(_SIZE)))
            await wait_until(lambda: mirror.get("old-49").version == "5", timeout=5)

            source.records = [make_record(name, "9") for name in sorted(_NEW)]
            source.version = "9"
            source.push(WatchStreamError("too old resource version", expired=True, status=410))
            await wait_until(lambda: source.watch_calls[-1:] == ["9"], timeout=5)
            await wait_until(lambda: reader.snapshots > 0 and _NEW in reader.tables, timeout=5)
        finally:
            reader.done.set()
            reader.join(timeout=5)
            stop.stop()
            await mirror.sync_task

        assert reader.errors == []
        assert reader.snapshots > 0
        assert {r.name for r in mirror.list()} == _NEW
