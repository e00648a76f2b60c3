"""Utility modules for the auto-proposer."""

from . import task_tracker

__all__ = ["task_tracker"]
