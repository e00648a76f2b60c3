"""
Metrics endpoint for observability.

Provides /api/metrics endpoint protected by an API key.
Tracks in-memory counters for auto-proposal attempts, successes, failures
and loop crashes, plus a latency histogram (p50/p95/p99) of the propose call.
"""

import hashlib
import hmac
import logging
import math
import threading
import time
from collections import deque
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from ..core.config import get_settings
from ..utils.task_tracker import get_active_task_count

logger = logging.getLogger(__name__)

# Maximum number of latency samples to keep in the ring buffer
_MAX_LATENCY_SAMPLES = 10000


class MetricsCollector:
    """Thread-safe in-memory metrics collector for the auto-proposer."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.proposal_attempts: int = 0
        self.proposal_successes: int = 0
        self.proposal_failures: int = 0
        self.loop_failures: int = 0
        self._latencies: deque = deque(maxlen=_MAX_LATENCY_SAMPLES)
        self._start_time: float = time.monotonic()

    def record_proposal_attempt(self) -> None:
        """Increment the attempt counter."""
        with self._lock:
            self.proposal_attempts += 1

    def record_proposal_success(self, seconds: float) -> None:
        """Count a successful proposal and keep its latency sample."""
        with self._lock:
            self.proposal_successes += 1
            self._latencies.append(seconds)

    def record_proposal_failure(self) -> None:
        """Increment the failed-proposal counter."""
        with self._lock:
            self.proposal_failures += 1

    def record_loop_failure(self) -> None:
        """Increment the counter of loops that stopped on an unexpected error."""
        with self._lock:
            self.loop_failures += 1

    def get_latency_percentiles(self) -> Dict[str, float]:
        """Calculate p50, p95, p99 from recorded latency samples."""
        with self._lock:
            if not self._latencies:
                return {"p50": 0, "p95": 0, "p99": 0}

            sorted_latencies = sorted(self._latencies)
            n = len(sorted_latencies)

            def percentile(p: float) -> float:
                idx = (p / 100.0) * (n - 1)
                lower = int(math.floor(idx))
                upper = int(math.ceil(idx))
                if lower == upper:
                    return sorted_latencies[lower]
                # Linear interpolation
                frac = idx - lower
                return (
                    sorted_latencies[lower] * (1 - frac)
                    + sorted_latencies[upper] * frac
                )

            return {
                "p50": round(percentile(50), 4),
                "p95": round(percentile(95), 4),
                "p99": round(percentile(99), 4),
            }

    def get_snapshot(self) -> Dict[str, Any]:
        """Return a full metrics snapshot."""
        active_tasks = get_active_task_count()
        with self._lock:
            return {
                "proposal_attempts": self.proposal_attempts,
                "proposal_successes": self.proposal_successes,
                "proposal_failures": self.proposal_failures,
                "loop_failures": self.loop_failures,
                "active_tasks": active_tasks,
                "uptime_seconds": round(time.monotonic() - self._start_time, 2),
                "propose_latency": self.get_latency_percentiles(),
            }


# ---------------------------------------------------------------------------
# Singleton collector
# ---------------------------------------------------------------------------

_collector: Optional[MetricsCollector] = None


def get_collector() -> MetricsCollector:
    """Return the global MetricsCollector singleton."""
    global _collector
    if _collector is None:
        _collector = MetricsCollector()
    return _collector


# ---------------------------------------------------------------------------
# Auth dependency
# ---------------------------------------------------------------------------


def compute_metrics_api_key(secret: str) -> str:
    """Derive the metrics API key from the configured secret."""
    return hashlib.sha256(f"{secret}:metrics_api".encode()).hexdigest()


async def _verify_metrics_key(
    x_api_key: Optional[str] = Header(None, description="Metrics API key"),
) -> bool:
    """Verify the API key for metrics access."""
    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
        )

    secret = get_settings().metrics_api_secret
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Auth not configured",
        )

    if not hmac.compare_digest(x_api_key, compute_metrics_api_key(secret)):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
    return True


# ---------------------------------------------------------------------------
# Router factory
# ---------------------------------------------------------------------------


def create_metrics_router() -> APIRouter:
    """Create and return the metrics router."""
    router = APIRouter()

    @router.get(
        "/api/metrics",
        dependencies=[Depends(_verify_metrics_key)],
    )
    async def metrics_endpoint() -> Dict[str, Any]:
        """Return current metrics snapshot.

        Requires the metrics API key via X-Api-Key header.
        """
        return get_collector().get_snapshot()

    return router
