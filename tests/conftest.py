"""Shared fixtures for nodewatch tests."""

from __future__ import annotations

import pytest

from nodewatch.cancellation import StopSignal

from tests.fakes import ScriptedSource, make_record


@pytest.fixture
def stop() -> StopSignal:
    return StopSignal()


@pytest.fixture
def source() -> ScriptedSource:
    """Source listing two nodes at version 100."""
    return ScriptedSource([make_record("node-a", "10"), make_record("node-b", "11")], version="100")


@pytest.fixture
def empty_source() -> ScriptedSource:
    return ScriptedSource([], version="1")
