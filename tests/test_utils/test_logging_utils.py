"""
Tests for the Logging Utilities module.

Tests cover:
- setup_logging() handler and level configuration
- structlog configuration
- ProposalLogContext timing and exception pass-through
"""

import logging
import logging.handlers
from unittest.mock import MagicMock

import pytest
import structlog

from auto_proposer.utils.logging import (
    ProposalLogContext,
    get_proposal_logger,
    setup_logging,
)


@pytest.fixture
def clean_logging_state():
    """Restore root logger and structlog state after each test."""
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers.copy()
    original_level = root_logger.level
    root_logger.handlers.clear()
    yield root_logger
    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers = original_handlers
    root_logger.setLevel(original_level)
    structlog.reset_defaults()


class TestSetupLogging:
    def test_console_only(self, clean_logging_state, tmp_path):
        setup_logging(log_level="DEBUG", log_to_file=False, logs_dir=tmp_path / "logs")

        handlers = clean_logging_state.handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert clean_logging_state.level == logging.DEBUG
        assert not (tmp_path / "logs").exists()

    def test_file_handlers_created(self, clean_logging_state, tmp_path):
        logs_dir = tmp_path / "logs"

        setup_logging(log_level="INFO", log_to_file=True, logs_dir=logs_dir)

        rotating = [
            h
            for h in clean_logging_state.handlers
            if isinstance(h, logging.handlers.RotatingFileHandler)
        ]
        assert len(rotating) == 2
        assert {h.level for h in rotating} == {logging.INFO, logging.ERROR}
        assert (logs_dir / "auto_proposer.log").exists()
        assert (logs_dir / "errors.log").exists()

    def test_configures_structlog(self, clean_logging_state):
        structlog.reset_defaults()

        setup_logging(log_level="WARNING", log_to_file=False)

        assert structlog.is_configured()

    def test_invalid_level_raises(self, clean_logging_state):
        with pytest.raises(AttributeError):
            setup_logging(log_level="LOUD", log_to_file=False)


class TestProposalLogContext:
    def test_records_elapsed_time_on_success(self):
        logger = MagicMock()

        with ProposalLogContext("propose_block", logger=logger, pending_count=3) as ctx:
            pass

        assert ctx.elapsed_seconds is not None
        assert ctx.elapsed_seconds >= 0
        done_call = logger.debug.call_args_list[-1]
        assert done_call.args[0] == "propose_block - DONE"
        assert done_call.kwargs["pending_count"] == 3

    def test_logs_failure_at_debug_and_reraises(self):
        logger = MagicMock()

        with pytest.raises(RuntimeError):
            with ProposalLogContext("propose_block", logger=logger) as ctx:
                raise RuntimeError("no new deploys")

        assert ctx.elapsed_seconds is not None
        logger.warning.assert_not_called()
        logger.error.assert_not_called()
        failed_call = logger.debug.call_args_list[-1]
        assert failed_call.args[0] == "propose_block - FAILED"
        kwargs = failed_call.kwargs
        assert kwargs["error_type"] == "RuntimeError"
        assert kwargs["error_message"] == "no new deploys"

    def test_default_logger(self):
        assert get_proposal_logger() is not None
