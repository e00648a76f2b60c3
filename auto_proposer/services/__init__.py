"""Auto-proposal loop and its collaborators."""

from .auto_proposer import AutoProposer, LoopState
from .interfaces import SystemClock
from .pending_store import InMemoryPendingStore

__all__ = ["AutoProposer", "LoopState", "SystemClock", "InMemoryPendingStore"]
