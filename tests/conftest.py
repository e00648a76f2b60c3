import asyncio
import logging
import os
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import pytest

# Set test environment variables
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["METRICS_API_SECRET"] = "test-secret"

# Virtual start time; kept far from zero, which the loop treats as "unset"
T0 = 1_000_000


class FakeClock:
    """Virtual clock whose sleep advances time instantly.

    Once virtual time passes ``stop_at_millis`` the next sleep raises
    CancelledError, which ends the loop the same way a real cancellation does.
    """

    def __init__(self, start_millis: int = T0, stop_at_millis: Optional[int] = None):
        self.now = start_millis
        self.stop_at_millis = stop_at_millis
        self.sleeps: List[float] = []

    def current_millis(self) -> int:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += int(round(seconds * 1000))
        if self.stop_at_millis is not None and self.now > self.stop_at_millis:
            raise asyncio.CancelledError()
        await asyncio.sleep(0)


class ScriptedSource:
    """Pending-work source that replays a timeline of pending sets.

    ``timeline`` is a list of ``(offset_millis, ids)``; each read returns the
    ids of the latest entry whose offset has been reached.
    """

    def __init__(self, clock: FakeClock, timeline: Sequence[Tuple[int, Iterable]]):
        self.clock = clock
        self.timeline = sorted(timeline, key=lambda entry: entry[0])
        self.reads = 0

    async def read_pending_ids(self):
        self.reads += 1
        offset = self.clock.now - T0
        current: frozenset = frozenset()
        for start, ids in self.timeline:
            if start <= offset:
                current = frozenset(ids)
        return current


class RecordingPropose:
    """Propose action that records the virtual time of every call."""

    def __init__(
        self,
        clock: FakeClock,
        result=b"\xab" * 32,
        error: Optional[Exception] = None,
        on_call: Optional[Callable[[], None]] = None,
    ):
        self.clock = clock
        self.result = result
        self.error = error
        self.on_call = on_call
        self.call_offsets: List[int] = []

    async def __call__(self):
        self.call_offsets.append(self.clock.now - T0)
        if self.on_call:
            self.on_call()
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def fake_clock():
    return FakeClock(stop_at_millis=T0 + 5_000)


@pytest.fixture(autouse=True)
async def clean_task_registry():
    """Cancel and forget background tasks left over by a test."""
    from auto_proposer.utils import task_tracker

    await task_tracker.cancel_all_tasks(timeout=1.0)
    task_tracker._tasks.clear()
    yield
    await task_tracker.cancel_all_tasks(timeout=1.0)
    task_tracker._tasks.clear()


@pytest.fixture(autouse=True)
def _strip_file_handlers():
    """Remove file handlers from root logger so tests never write to logs/."""
    root = logging.getLogger()
    saved = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    for h in saved:
        root.removeHandler(h)
    yield
    for h in list(root.handlers):
        if isinstance(h, logging.FileHandler):
            root.removeHandler(h)
    for h in saved:
        root.addHandler(h)


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    from auto_proposer.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
