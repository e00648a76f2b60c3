import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

_FILE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
)


def setup_logging(
    log_level: str = "INFO",
    log_to_file: bool = True,
    logs_dir: Optional[Path] = None,
) -> None:
    """Set up logging configuration for the auto-proposer.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to log to files in addition to console
        logs_dir: Directory for log files (defaults to ./logs)
    """
    level = getattr(logging, log_level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.set_exc_info,
            (
                structlog.processors.JSONRenderer()
                if log_to_file
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    if log_to_file:
        logs_dir = logs_dir or Path("logs")
        logs_dir.mkdir(parents=True, exist_ok=True)

        app_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "auto_proposer.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        )
        app_handler.setLevel(logging.INFO)
        app_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        root_logger.addHandler(app_handler)

        # Error-only log file for failed proposals and loop crashes
        error_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "errors.log", maxBytes=5 * 1024 * 1024, backupCount=10  # 5MB
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        root_logger.addHandler(error_handler)


def get_proposal_logger(name: str = None) -> structlog.BoundLogger:
    """Get a structured logger for proposal events.

    Args:
        name: Logger name (defaults to "proposals")
    """
    return structlog.get_logger(name or "proposals")


class ProposalLogContext:
    """Context manager that times a proposal and logs its outcome.

    Logs START on entry and DONE or FAILED (with the exception details) on
    exit, all at debug level; callers report failures themselves. Exceptions
    are never suppressed.
    """

    def __init__(self, operation: str, logger: structlog.BoundLogger = None, **context):
        self.operation = operation
        self.context: Dict[str, Any] = context
        self.logger = logger or get_proposal_logger()
        self.start_time: Optional[datetime] = None
        self.elapsed_seconds: Optional[float] = None

    def __enter__(self):
        self.start_time = datetime.now()
        self.logger.debug(
            f"{self.operation} - START",
            operation=self.operation,
            start_time=self.start_time.isoformat(),
            **self.context,
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        end_time = datetime.now()
        self.elapsed_seconds = (end_time - self.start_time).total_seconds()

        if exc_type is not None:
            self.logger.debug(
                f"{self.operation} - FAILED",
                operation=self.operation,
                error_type=exc_type.__name__,
                error_message=str(exc_val),
                elapsed_seconds=self.elapsed_seconds,
                **self.context,
            )
        else:
            self.logger.debug(
                f"{self.operation} - DONE",
                operation=self.operation,
                elapsed_seconds=self.elapsed_seconds,
                **self.context,
            )
        return False
