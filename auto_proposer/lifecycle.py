"""
Auto-proposer lifecycle management.

Starts the proposal loop as a tracked background task and hands back a
handle whose ``stop()`` ends the loop. Owners must release the handle on
every exit path, most simply with ``async with``; a handle that is never
stopped keeps the loop running for the life of the process.
"""

import asyncio
import logging
from typing import Optional

from .api.metrics import MetricsCollector
from .core.config import Settings
from .services.auto_proposer import AutoProposer
from .services.interfaces import Clock, PendingWorkSource, ProposeAction
from .utils.task_tracker import AUTO_PROPOSER_TASK, create_tracked_task

logger = logging.getLogger(__name__)


class AutoProposerHandle:
    """Handle to a running auto-proposer loop."""

    def __init__(self, proposer: AutoProposer, task: asyncio.Task):
        self.proposer = proposer
        self.task = task
        self._stopping = False

    @property
    def stopped(self) -> bool:
        return self._stopping and self.task.done()

    async def stop(self) -> None:
        """Stop the loop and wait for it to finish.

        Safe to call any number of times. A loop that is idle (asleep, not
        started yet or queued behind the propose lock) is cancelled right
        away. A loop in the middle of an iteration finishes it, including any
        propose call in flight, and exits before sleeping again. Once this
        returns the loop will not call the propose action again.
        """
        if not self._stopping:
            self._stopping = True
            self.proposer.request_stop()
            if (
                not self.proposer.running
                or self.proposer.sleeping
                or self.proposer.waiting_for_lock
            ):
                self.task.cancel()
            logger.info("Stopping auto-proposer...")

        await asyncio.gather(self.task, return_exceptions=True)

    async def __aenter__(self) -> "AutoProposerHandle":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()


def start_auto_proposer(
    check_interval: float,
    max_interval: float,
    max_count: int,
    propose_lock: asyncio.Lock,
    propose: ProposeAction,
    pending_source: PendingWorkSource,
    clock: Optional[Clock] = None,
    metrics: Optional[MetricsCollector] = None,
) -> AutoProposerHandle:
    """Start the proposal loop in the background.

    Must be called from within a running event loop.
    """
    proposer = AutoProposer(
        check_interval=check_interval,
        max_interval=max_interval,
        max_count=max_count,
        propose_lock=propose_lock,
        propose=propose,
        pending_source=pending_source,
        clock=clock,
        metrics=metrics,
    )
    task = create_tracked_task(proposer.run(), name=AUTO_PROPOSER_TASK)
    return AutoProposerHandle(proposer, task)


def start_auto_proposer_from_settings(
    settings: Settings,
    propose_lock: asyncio.Lock,
    propose: ProposeAction,
    pending_source: PendingWorkSource,
    clock: Optional[Clock] = None,
    metrics: Optional[MetricsCollector] = None,
) -> Optional[AutoProposerHandle]:
    """Start the loop with configured thresholds, or return None if disabled."""
    if not settings.auto_propose_enabled:
        logger.info("Auto-proposal disabled")
        return None

    return start_auto_proposer(
        check_interval=settings.auto_propose_check_interval,
        max_interval=settings.auto_propose_max_interval,
        max_count=settings.auto_propose_max_count,
        propose_lock=propose_lock,
        propose=propose,
        pending_source=pending_source,
        clock=clock,
        metrics=metrics,
    )
