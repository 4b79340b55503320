"""
Debounce gate for reconciliation runs.

Collapses a bursty trigger source (every page view, cron, admin clicks) into at
most one run per `min_interval_seconds`. This is a rate limiter, not a timer:
nothing fires on its own.
"""
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class SyncScheduler:
    def __init__(self, min_interval_seconds: float = 120.0) -> None:
        self.min_interval_seconds = min_interval_seconds
        self._last_run_at: Optional[float] = None

    @property
    def last_run_at(self) -> Optional[float]:
        return self._last_run_at

    def should_run(self, now: float) -> bool:
        if self._last_run_at is None:
            return True
        return now - self._last_run_at >= self.min_interval_seconds

    def mark_run(self, now: float) -> None:
        self._last_run_at = now

    def seconds_until_due(self, now: float) -> float:
        if self._last_run_at is None:
            return 0.0
        return max(self.min_interval_seconds - (now - self._last_run_at), 0.0)

    def reset(self) -> None:
        """Forget the last run (operator use)."""
        self._last_run_at = None
        logger.info("Sync scheduler reset; next trigger will run immediately")
