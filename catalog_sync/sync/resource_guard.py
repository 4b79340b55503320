"""
Platform quota protection.

UsageMonitor  - request-layer counters (requests, bytes transferred, invocations).
ResourceGuard - circuit breaker that refuses sync-triggering work once any
                monitored usage ratio reaches the critical threshold, and closes
                again once that usage is observed back below the safe threshold.

Breaker states:
    closed --(usage >= critical)--> open
    open   --(usage <  safe)------> closed
    open   --(safe <= usage < critical)--> open   (hysteresis)
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Set, Union

from catalog_sync.errors import QuotaRefusal
from catalog_sync.utils.config_loader import GuardThresholds

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    REQUESTS = "requests"
    BYTES_TRANSFERRED = "bytes_transferred"
    INVOCATIONS = "invocations"


class UsageLevel(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    CRITICAL = "critical"
    EMERGENCY = "emergency"


@dataclass
class UsageReading:
    level: UsageLevel
    percentage: float
    message: str


KindLike = Union[ResourceKind, str]


def check_usage_safety(current_usage: float, limit: float, thresholds: Optional[GuardThresholds] = None) -> UsageReading:
    """Classify usage against a quota."""
    thresholds = thresholds or GuardThresholds()
    percentage = (current_usage / limit) * 100 if limit > 0 else 0.0

    if percentage >= thresholds.emergency_percent:
        return UsageReading(UsageLevel.EMERGENCY, percentage, f"EMERGENCY: usage above {thresholds.emergency_percent:g}%")
    if percentage >= thresholds.critical_percent:
        return UsageReading(UsageLevel.CRITICAL, percentage, f"CRITICAL: usage above {thresholds.critical_percent:g}%")
    if percentage >= thresholds.safe_percent:
        return UsageReading(UsageLevel.WARNING, percentage, f"WARNING: usage above {thresholds.safe_percent:g}%")
    return UsageReading(UsageLevel.SAFE, percentage, "Safe usage levels")


class ResourceGuard:
    """Circuit breaker over per-kind platform usage.

    Evaluation of each resource kind is throttled to once per
    ``poll_interval_seconds``; between polls the last decision is returned.
    Kinds are evaluated independently and any tripped kind keeps the breaker open.
    """

    def __init__(
        self,
        quotas: Mapping[str, float],
        thresholds: Optional[GuardThresholds] = None,
        poll_interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.quotas: Dict[ResourceKind, float] = {ResourceKind(k): float(v) for k, v in quotas.items()}
        self.thresholds = thresholds or GuardThresholds()
        self.poll_interval_seconds = poll_interval_seconds
        self._clock = clock
        self._last_check: Dict[ResourceKind, float] = {}
        self._readings: Dict[ResourceKind, UsageReading] = {}
        self._tripped: Set[ResourceKind] = set()

    @property
    def is_open(self) -> bool:
        return bool(self._tripped)

    def should_block(self, resource_kind: KindLike, current_usage: float, now: Optional[float] = None) -> bool:
        kind = ResourceKind(resource_kind)
        now = self._clock() if now is None else now

        last = self._last_check.get(kind)
        if last is not None and now - last < self.poll_interval_seconds:
            return self.is_open

        self._last_check[kind] = now
        quota = self.quotas.get(kind)
        if not quota:
            logger.debug("No quota configured for %s; not evaluated", kind.value)
            return self.is_open

        reading = check_usage_safety(current_usage, quota, self.thresholds)
        self._readings[kind] = reading

        if reading.level in (UsageLevel.CRITICAL, UsageLevel.EMERGENCY):
            if kind not in self._tripped:
                logger.error("CIRCUIT BREAKER ACTIVATED: %s usage at %.1f%%", kind.value, reading.percentage)
            self._tripped.add(kind)
        elif reading.level is UsageLevel.SAFE and kind in self._tripped:
            self._tripped.discard(kind)
            logger.info("Circuit breaker cleared for %s: usage back to %.1f%%", kind.value, reading.percentage)
            if not self._tripped:
                logger.info("Circuit breaker closed")

        return self.is_open

    def evaluate(self, usage: Mapping[KindLike, float], now: Optional[float] = None) -> Optional[QuotaRefusal]:
        """Feed a usage snapshot; return a refusal when the breaker is open."""
        now = self._clock() if now is None else now
        for kind, value in usage.items():
            self.should_block(kind, value, now=now)
        if self.is_open:
            return self.refusal()
        return None

    def refusal(self, resource_kind: Optional[KindLike] = None) -> QuotaRefusal:
        if resource_kind is not None:
            kind = ResourceKind(resource_kind)
        elif self._tripped:
            kind = max(self._tripped, key=lambda k: self._readings[k].percentage if k in self._readings else 0.0)
        else:
            kind = ResourceKind.REQUESTS
        reading = self._readings.get(kind)
        return QuotaRefusal(
            reason="Service temporarily unavailable due to resource limits",
            resource_kind=kind.value,
            percentage=reading.percentage if reading else 0.0,
            retry_after_seconds=max(int(math.ceil(self.poll_interval_seconds)), 1),
            message=f"{kind.value} usage is too high. Please try again later.",
        )

    def reset(self) -> None:
        """Force the breaker closed (operator override for stale usage samples)."""
        self._tripped.clear()
        self._last_check.clear()
        logger.warning("Circuit breaker manually reset")

    def status(self) -> Dict[str, Any]:
        return {
            "is_open": self.is_open,
            "tripped": sorted(k.value for k in self._tripped),
            "poll_interval_seconds": self.poll_interval_seconds,
            "readings": {
                k.value: {"level": r.level.value, "percentage": round(r.percentage, 2)}
                for k, r in self._readings.items()
            },
        }


class UsageMonitor:
    """Process-wide usage counters fed by the request-handling layer."""

    def __init__(self, quotas: Optional[Mapping[str, float]] = None, warn_ratio: float = 0.8) -> None:
        self.quotas: Dict[ResourceKind, float] = {ResourceKind(k): float(v) for k, v in (quotas or {}).items()}
        self.warn_ratio = warn_ratio
        self._lock = threading.Lock()
        self._counters: Dict[ResourceKind, float] = {kind: 0 for kind in ResourceKind}
        self._warned: Set[ResourceKind] = set()

    def track_request(self, size: int = 0) -> None:
        with self._lock:
            self._counters[ResourceKind.REQUESTS] += 1
            self._counters[ResourceKind.BYTES_TRANSFERRED] += max(size, 0)
        self._maybe_warn(ResourceKind.REQUESTS)
        self._maybe_warn(ResourceKind.BYTES_TRANSFERRED)

    def track_invocation(self) -> None:
        with self._lock:
            self._counters[ResourceKind.INVOCATIONS] += 1
        self._maybe_warn(ResourceKind.INVOCATIONS)

    def _maybe_warn(self, kind: ResourceKind) -> None:
        quota = self.quotas.get(kind)
        if not quota or kind in self._warned:
            return
        if self._counters[kind] > quota * self.warn_ratio:
            self._warned.add(kind)
            logger.warning("Approaching %s limit: %s of %s", kind.value, int(self._counters[kind]), int(quota))

    def snapshot(self) -> Dict[ResourceKind, float]:
        with self._lock:
            return dict(self._counters)

    def stats(self) -> Dict[str, Any]:
        counters = self.snapshot()
        out: Dict[str, Any] = {}
        for kind, value in counters.items():
            quota = self.quotas.get(kind)
            out[kind.value] = {
                "usage": value,
                "quota": quota,
                "percent": round((value / quota) * 100, 4) if quota else None,
            }
        return out

    def reset(self) -> None:
        with self._lock:
            self._counters = {kind: 0 for kind in ResourceKind}
            self._warned.clear()
