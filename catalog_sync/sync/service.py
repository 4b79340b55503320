"""
Sync trigger surface.

`maybe_sync()` is safe to call from any request path: it only reconciles when the
debounce window has elapsed and the resource guard is closed. `force_sync()` is
the operator path; it skips the debounce but still honours the guard.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from catalog_sync.errors import CatalogFetchError, QuotaRefusal
from catalog_sync.sync.coordinator import ReconcileResult, ReconciliationCoordinator
from catalog_sync.sync.resource_guard import ResourceGuard, ResourceKind
from catalog_sync.sync.scheduler import SyncScheduler

logger = logging.getLogger(__name__)

UsageSource = Callable[[], Mapping[ResourceKind, float]]


class SyncStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    BLOCKED = "blocked"


@dataclass
class SyncOutcome:
    status: SyncStatus
    result: Optional[ReconcileResult] = None
    refusal: Optional[QuotaRefusal] = None
    retry_after_seconds: Optional[float] = None

    @property
    def ran(self) -> bool:
        return self.status is SyncStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"status": self.status.value, "success": self.status is not SyncStatus.BLOCKED}
        if self.result is not None:
            summary = self.result.to_dict()
            payload.update(summary)
            payload["message"] = (
                f"Synced {self.result.synced} products, deleted {self.result.deleted}, "
                f"{len(self.result.errors)} errors"
            )
        if self.refusal is not None:
            payload["refusal"] = self.refusal.to_dict()
            payload["message"] = self.refusal.message
        if self.retry_after_seconds is not None:
            payload["retry_after_seconds"] = round(self.retry_after_seconds, 1)
        return payload


class SyncService:
    def __init__(
        self,
        coordinator: ReconciliationCoordinator,
        scheduler: SyncScheduler,
        guard: ResourceGuard,
        usage_source: Optional[UsageSource] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.coordinator = coordinator
        self.scheduler = scheduler
        self.guard = guard
        self.usage_source = usage_source or (lambda: {})
        self._clock = clock
        self.last_result: Optional[ReconcileResult] = None
        self.last_error: Optional[str] = None
        self.runs_in_flight = 0

    async def maybe_sync(self, now: Optional[float] = None) -> SyncOutcome:
        now = self._clock() if now is None else now
        if not self.scheduler.should_run(now):
            wait = self.scheduler.seconds_until_due(now)
            logger.debug("Sync skipped; next run due in %.0fs", wait)
            return SyncOutcome(SyncStatus.SKIPPED, retry_after_seconds=wait)

        refusal = self._check_guard(now)
        if refusal is not None:
            return SyncOutcome(SyncStatus.BLOCKED, refusal=refusal, retry_after_seconds=refusal.retry_after_seconds)

        return await self._run(now)

    async def force_sync(self, now: Optional[float] = None) -> SyncOutcome:
        now = self._clock() if now is None else now
        refusal = self._check_guard(now)
        if refusal is not None:
            logger.warning("Forced sync refused: %s", refusal.message)
            return SyncOutcome(SyncStatus.BLOCKED, refusal=refusal, retry_after_seconds=refusal.retry_after_seconds)
        logger.info("Forced sync requested")
        return await self._run(now)

    def _check_guard(self, now: float) -> Optional[QuotaRefusal]:
        refusal = self.guard.evaluate(self.usage_source(), now=now)
        if refusal is not None:
            logger.warning(
                "Sync blocked by circuit breaker: %s at %.1f%%", refusal.resource_kind, refusal.percentage
            )
        return refusal

    async def _run(self, now: float) -> SyncOutcome:
        # Marked before the first await so racing triggers in this window see it.
        self.scheduler.mark_run(now)
        self.runs_in_flight += 1
        try:
            result = await self.coordinator.reconcile()
        except CatalogFetchError as e:
            self.last_error = str(e)
            raise
        finally:
            self.runs_in_flight -= 1
        self.last_result = result
        self.last_error = None
        return SyncOutcome(SyncStatus.COMPLETED, result=result)

    # ------------------------------------------------------------------ #
    # Operator paths
    # ------------------------------------------------------------------ #
    def reset_breaker(self) -> None:
        self.guard.reset()

    def reset_scheduler(self) -> None:
        self.scheduler.reset()

    def status(self, now: Optional[float] = None) -> Dict[str, Any]:
        now = self._clock() if now is None else now
        return {
            "scheduler": {
                "min_interval_seconds": self.scheduler.min_interval_seconds,
                "due": self.scheduler.should_run(now),
                "seconds_until_due": round(self.scheduler.seconds_until_due(now), 1),
            },
            "circuit_breaker": self.guard.status(),
            "runs_in_flight": self.runs_in_flight,
            "last_result": self.last_result.to_dict() if self.last_result else None,
            "last_error": self.last_error,
        }
