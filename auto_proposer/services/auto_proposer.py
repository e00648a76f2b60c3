"""Automatic block proposal loop.

Proposes a block whenever a timespan has elapsed or there are more than a
certain number of new pending deploys. A burst of new deploys starts a
debounce window instead of proposing right away; the proposal fires once the
window reaches ``max_interval`` or the pending count reaches ``max_count``.

The same set of pending deploys is never proposed twice in a row, so an
unchanged backlog does not re-trigger the proposal while the pending source
still reports it.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional

from ..api.metrics import MetricsCollector
from ..utils.formatting import format_block_id
from ..utils.logging import ProposalLogContext
from .interfaces import Clock, PendingWorkSource, ProposeAction, SystemClock

logger = logging.getLogger(__name__)

# Sentinel for "no active debounce window"
UNSET = 0


@dataclass
class LoopState:
    """Mutable state of a single run of the loop."""

    # Deploys we tried to propose last time.
    last_proposed_items: FrozenSet = field(default_factory=frozenset)
    # Time we saw the first new deploys after an auto-proposal.
    debounce_start_millis: int = UNSET


class AutoProposer:
    """Debounced, threshold-based trigger for the propose action."""

    def __init__(
        self,
        check_interval: float,
        max_interval: float,
        max_count: int,
        propose_lock: asyncio.Lock,
        propose: ProposeAction,
        pending_source: PendingWorkSource,
        clock: Optional[Clock] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Initialize the auto-proposer.

        Args:
            check_interval: Seconds to sleep between checks of the pending set
            max_interval: Seconds of debounce after which a proposal is forced
            max_count: Pending count at which a proposal is forced
            propose_lock: Lock shared with every other caller of ``propose``
            propose: Coroutine function that proposes a block and returns its id
            pending_source: Source of the currently pending deploy ids
            clock: Time source (defaults to the system clock)
            metrics: Optional metrics collector
        """
        if check_interval <= 0:
            raise ValueError(f"check_interval must be positive, got {check_interval}")
        if max_interval <= 0:
            raise ValueError(f"max_interval must be positive, got {max_interval}")
        if max_count <= 0:
            raise ValueError(f"max_count must be positive, got {max_count}")

        self.check_interval = check_interval
        self.max_interval = max_interval
        self.max_count = max_count
        self._max_elapsed_millis = int(max_interval * 1000)
        self._propose_lock = propose_lock
        self._propose = propose
        self._pending_source = pending_source
        self._clock = clock or SystemClock()
        self._metrics = metrics

        self.state: Optional[LoopState] = None
        self.proposal_count = 0
        self.fatal_error: Optional[BaseException] = None
        self._running = False
        self._sleeping = False
        self._stop_requested = False
        self._waiting_for_lock = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def sleeping(self) -> bool:
        return self._sleeping

    @property
    def waiting_for_lock(self) -> bool:
        """True while a triggered proposal is queued behind the propose lock."""
        return self._waiting_for_lock

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    def request_stop(self) -> None:
        """Ask the loop to exit before its next proposal or sleep."""
        self._stop_requested = True

    async def run(self) -> None:
        """Run the loop until stopped, cancelled or failed."""
        state = LoopState()
        self.state = state
        self._running = True
        logger.info(
            f"Auto-proposer started (check every {self.check_interval}s, "
            f"max interval {self.max_interval}s, max count {self.max_count})"
        )

        try:
            while not self._stop_requested:
                now_millis = self._clock.current_millis()
                pending = frozenset(await self._pending_source.read_pending_ids())
                elapsed_millis = now_millis - state.debounce_start_millis

                if pending and state.debounce_start_millis == UNSET:
                    # Reset time when we see a new deploy.
                    state.debounce_start_millis = now_millis

                elif (
                    pending
                    and pending != state.last_proposed_items
                    and (
                        elapsed_millis >= self._max_elapsed_millis
                        or len(pending) >= self.max_count
                    )
                ):
                    if self._stop_requested:
                        break
                    logger.info(
                        f"Proposing block after {elapsed_millis} ms "
                        f"with {len(pending)} pending deploys."
                    )
                    if not await self._try_propose(len(pending)):
                        break
                    state.last_proposed_items = pending
                    state.debounce_start_millis = UNSET

                if self._stop_requested:
                    break
                await self._sleep()

        except asyncio.CancelledError:
            logger.info("Auto-proposer cancelled")
            raise
        except Exception as e:
            self.fatal_error = e
            self._record("record_loop_failure")
            logger.error("Auto-proposal stopped unexpectedly.", exc_info=True)
        finally:
            self._running = False

        if self._stop_requested and self.fatal_error is None:
            logger.info("Auto-proposer stopped")

    async def _sleep(self) -> None:
        self._sleeping = True
        try:
            await self._clock.sleep(self.check_interval)
        finally:
            self._sleeping = False

    async def _try_propose(self, pending_count: int) -> bool:
        """Propose a block under the shared lock.

        Failures of the propose call are logged and swallowed so the loop
        carries on with its next check. Returns False without calling
        propose when a stop was requested while waiting for the lock.
        """
        self._waiting_for_lock = True
        try:
            async with self._propose_lock:
                self._waiting_for_lock = False
                if self._stop_requested:
                    logger.info("Stop requested while waiting for the propose lock")
                    return False

                self._record("record_proposal_attempt")
                self.proposal_count += 1
                try:
                    with ProposalLogContext(
                        "propose_block", pending_count=pending_count
                    ) as timing:
                        block_id = await self._propose()
                except Exception:
                    self._record("record_proposal_failure")
                    logger.error("Could not propose block.", exc_info=True)
                    return True
        finally:
            self._waiting_for_lock = False

        self._record("record_proposal_success", timing.elapsed_seconds)
        logger.info(f"Proposed block {format_block_id(block_id)}")
        return True

    def _record(self, method: str, *args: Any) -> None:
        if self._metrics is None:
            return
        try:
            getattr(self._metrics, method)(*args)
        except Exception as e:
            logger.debug(f"Failed to record metric {method}: {e}")

    def get_status(self) -> Dict[str, Any]:
        """Get loop status as dictionary."""
        state = self.state
        return {
            "running": self._running,
            "check_interval": self.check_interval,
            "max_interval": self.max_interval,
            "max_count": self.max_count,
            "last_proposed_count": len(state.last_proposed_items) if state else 0,
            "debounce_start_millis": state.debounce_start_millis if state else UNSET,
            "proposal_count": self.proposal_count,
            "fatal_error": repr(self.fatal_error) if self.fatal_error else None,
        }
