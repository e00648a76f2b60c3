"""
Startup configuration validation and redacted summary logging.

Called early in the FastAPI lifespan to fail fast on misconfiguration.
"""

import logging
from typing import List

from .config import Settings

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def validate_config(settings: Settings) -> List[str]:
    """
    Validate application configuration and return a list of error strings.

    An empty list means the configuration is valid.
    """
    errors: List[str] = []

    # -- Auto-proposal thresholds ------------------------------------------
    if settings.auto_propose_check_interval <= 0:
        errors.append(
            f"AUTO_PROPOSE_CHECK_INTERVAL must be positive, "
            f"got {settings.auto_propose_check_interval}"
        )
    if settings.auto_propose_max_interval <= 0:
        errors.append(
            f"AUTO_PROPOSE_MAX_INTERVAL must be positive, "
            f"got {settings.auto_propose_max_interval}"
        )
    if settings.auto_propose_max_count <= 0:
        errors.append(
            f"AUTO_PROPOSE_MAX_COUNT must be positive, "
            f"got {settings.auto_propose_max_count}"
        )

    # Polling slower than the ceiling makes the ceiling meaningless.
    if (
        settings.auto_propose_check_interval > 0
        and settings.auto_propose_max_interval > 0
        and settings.auto_propose_check_interval > settings.auto_propose_max_interval
    ):
        errors.append(
            "AUTO_PROPOSE_CHECK_INTERVAL must not exceed AUTO_PROPOSE_MAX_INTERVAL "
            f"({settings.auto_propose_check_interval} > "
            f"{settings.auto_propose_max_interval})"
        )

    # -- LOG_LEVEL ------------------------------------------------------------
    if settings.log_level.upper() not in _LOG_LEVELS:
        errors.append(
            f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}: "
            f"'{settings.log_level}'"
        )

    return errors


def _redact(secret: str) -> str:
    """Return first 4 characters followed by '***', or '<empty>' if blank."""
    if not secret:
        return "<empty>"
    return secret[:4] + "***"


def log_config_summary(settings: Settings) -> None:
    """Log an INFO-level summary of loaded configuration with secrets redacted."""
    summary_lines = [
        f"environment={settings.environment}",
        f"auto_propose={'on' if settings.auto_propose_enabled else 'off'}",
        f"check_interval={settings.auto_propose_check_interval}s",
        f"max_interval={settings.auto_propose_max_interval}s",
        f"max_count={settings.auto_propose_max_count}",
        f"metrics_secret={_redact(settings.metrics_api_secret)}",
    ]

    logger.info("Config loaded: %s", " | ".join(summary_lines))
