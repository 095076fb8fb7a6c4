"""Property-based tests for ResourceMirror event application.

Any sequence of add/update/delete events must leave the mirror equal to a
plain dict model, and every applied mutation must be reported exactly once.
"""

from __future__ import annotations

import asyncio

from hypothesis import given, settings
from hypothesis import strategies as st

from nodewatch.cache.resource_mirror import ResourceMirror
from nodewatch.models.events import AddEvent, DeleteEvent, UpdateEvent

from tests.fakes import Recorder, ScriptedSource, make_record

_names = st.sampled_from(["n0", "n1", "n2", "n3"])
_ops = st.lists(
    st.tuples(st.sampled_from(["add", "update", "delete"]), _names),
    max_size=60,
)


def _replay(ops: list[tuple[str, str]]) -> tuple[ResourceMirror, Recorder]:
    mirror = ResourceMirror(ScriptedSource())
    recorder = Recorder()
    mirror.on_added(recorder)
    mirror.on_updated(recorder)
    mirror.on_deleted(recorder)

    async def run() -> None:
        for version, (op, name) in enumerate(ops, start=1):
            record = make_record(name, str(version))
            if op == "add":
                await mirror.apply(AddEvent(record))
            elif op == "update":
                await mirror.apply(UpdateEvent(record))
            else:
                await mirror.apply(DeleteEvent(record))

    asyncio.run(run())
    return mirror, recorder


@settings(max_examples=200, deadline=None)
@given(ops=_ops)
def test_mirror_matches_last_write_model(ops: list[tuple[str, str]]) -> None:
    model: dict[str, str] = {}
    expected: list[tuple[str, str, str | None, str]] = []
    for version, (op, name) in enumerate(ops, start=1):
        if op == "delete":
            if name in model:
                expected.append(("deleted", name, None, model.pop(name)))
            continue
        old = model.get(name)
        model[name] = str(version)
        if old is None:
            expected.append(("added", name, None, str(version)))
        else:
            expected.append(("updated", name, old, str(version)))

    mirror, recorder = _replay(ops)

    assert {r.name: r.version for r in mirror.list()} == model
    assert recorder.calls == expected
    for name, version in model.items():
        assert mirror.get(name).version == version
