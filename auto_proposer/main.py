"""
FastAPI host for the auto-proposer.

The host supplies the propose action and the pending-work source; the app
owns configuration, logging, the proposal loop's lifecycle and the
observability endpoints.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI

from .api.metrics import create_metrics_router, get_collector
from .core.config import Settings, get_settings
from .core.config_validator import log_config_summary, validate_config
from .lifecycle import start_auto_proposer_from_settings
from .services.interfaces import Clock, PendingWorkSource, ProposeAction
from .utils.logging import setup_logging
from .utils.task_tracker import cancel_all_tasks, get_active_task_names
from .version import __version__

logger = logging.getLogger(__name__)


def create_app(
    propose: ProposeAction,
    pending_source: PendingWorkSource,
    propose_lock: Optional[asyncio.Lock] = None,
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """Create the FastAPI application running the auto-proposer.

    Args:
        propose: Coroutine function proposing a block
        pending_source: Source of pending deploy ids
        propose_lock: Lock shared with other callers of ``propose``
            (a private one is created when omitted)
        settings: Settings to use instead of the cached environment settings
        clock: Time source for the loop (system clock by default)
        configure_logging: Whether to install the logging configuration
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logging:
            setup_logging(log_level=settings.log_level, log_to_file=settings.log_to_file)

        logger.info("Auto-proposer service starting up...")

        config_errors = validate_config(settings)
        if config_errors:
            for err in config_errors:
                logger.error(f"Config validation error: {err}")
            raise RuntimeError(
                f"Aborting startup due to {len(config_errors)} configuration error(s)"
            )
        log_config_summary(settings)

        handle = start_auto_proposer_from_settings(
            settings,
            propose_lock=propose_lock or asyncio.Lock(),
            propose=propose,
            pending_source=pending_source,
            clock=clock,
            metrics=get_collector(),
        )
        app.state.auto_proposer = handle
        if handle:
            logger.info("Started auto-proposer")

        try:
            yield
        finally:
            logger.info("Auto-proposer service shutting down...")
            if handle:
                await handle.stop()

            await cancel_all_tasks(timeout=5.0)
            logger.info("Shutdown complete")

    app = FastAPI(
        title="Auto-Proposer",
        description="Automatic block proposal scheduler",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(create_metrics_router())

    @app.get("/")
    async def root() -> Dict[str, str]:
        """Root endpoint with API info."""
        return {"message": "Auto-Proposer API", "version": __version__}

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        """Report whether the proposal loop is alive."""
        handle = getattr(app.state, "auto_proposer", None)
        if handle is None:
            return {"status": "ok", "auto_proposer": {"enabled": False}}

        proposer_status = handle.proposer.get_status()
        proposer_status["enabled"] = True
        proposer_status["background_tasks"] = get_active_task_names()
        healthy = proposer_status["fatal_error"] is None and not handle.task.done()
        return {
            "status": "ok" if healthy else "degraded",
            "auto_proposer": proposer_status,
        }

    return app
