"""
Background task registry.

The service runs its long-lived coroutines (the auto-proposal loop first of
all) as named tasks. Names are unique among live tasks so a second loop can
never be started next to the first; finished tasks drop out of the registry
on their own. Shutdown cancels whatever is still registered.
"""

import asyncio
import logging
from typing import Coroutine, Dict, List, Optional

logger = logging.getLogger(__name__)

AUTO_PROPOSER_TASK = "auto_proposer"

_tasks: Dict[str, asyncio.Task] = {}


def _report_outcome(task: asyncio.Task) -> None:
    name = task.get_name()
    if _tasks.get(name) is task:
        del _tasks[name]

    if task.cancelled():
        logger.info(f"Background task '{name}' cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            f"Background task '{name}' crashed",
            exc_info=(type(exc), exc, exc.__traceback__),
        )
    else:
        logger.info(f"Background task '{name}' finished")


def create_tracked_task(coro: Coroutine, name: str) -> asyncio.Task:
    """Schedule ``coro`` as the background task called ``name``.

    Raises:
        RuntimeError: if a task with the same name is still running
    """
    current = _tasks.get(name)
    if current is not None and not current.done():
        coro.close()
        raise RuntimeError(f"Background task '{name}' is already running")

    task = asyncio.create_task(coro, name=name)
    _tasks[name] = task
    task.add_done_callback(_report_outcome)
    logger.debug(f"Background task '{name}' scheduled")
    return task


def get_tracked_task(name: str) -> Optional[asyncio.Task]:
    """Return the live task registered under ``name``, if any."""
    return _tasks.get(name)


def get_active_task_names() -> List[str]:
    return sorted(_tasks)


def get_active_task_count() -> int:
    return len(_tasks)


async def cancel_all_tasks(timeout: float = 5.0) -> int:
    """Cancel every registered task and wait up to ``timeout`` seconds.

    Returns the number of tasks that ended cancelled. Tasks that ignore the
    cancellation past the timeout are left running and reported.
    """
    pending = [task for task in _tasks.values() if not task.done()]
    if not pending:
        return 0

    logger.info(
        f"Cancelling background tasks: {', '.join(t.get_name() for t in pending)}"
    )
    for task in pending:
        task.cancel()

    _, still_running = await asyncio.wait(pending, timeout=timeout)
    if still_running:
        logger.warning(
            "Background tasks did not stop in time: "
            f"{', '.join(t.get_name() for t in still_running)}"
        )

    return sum(1 for task in pending if task.cancelled())
