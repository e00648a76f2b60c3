"""
Collaborator interfaces consumed by the auto-proposal loop.

The loop only needs a clock, a read-only view of pending work and an async
propose callable; hosts plug in their own implementations.
"""

import asyncio
import time
from typing import Awaitable, Callable, Hashable, Iterable, Protocol, Union

WorkItemId = Hashable
BlockId = Union[bytes, str]
ProposeAction = Callable[[], Awaitable[BlockId]]


class Clock(Protocol):
    def current_millis(self) -> int: ...

    async def sleep(self, seconds: float) -> None: ...


class PendingWorkSource(Protocol):
    async def read_pending_ids(self) -> Iterable[WorkItemId]: ...


class SystemClock:
    """Wall clock backed by ``time.time`` and ``asyncio.sleep``."""

    def current_millis(self) -> int:
        return int(time.time() * 1000)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
