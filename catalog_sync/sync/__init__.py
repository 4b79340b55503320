"""
Catalog reconciliation core.

transformer  - pure normalization of raw catalog objects
coordinator  - desired vs current set reconciliation
scheduler    - debounce gate
resource_guard - quota circuit breaker and usage counters
service      - maybe_sync / force_sync trigger surface
images       - image candidate race
factory      - env-driven wiring of store, client and service
"""
from .coordinator import ReconcileResult, ReconciliationCoordinator
from .resource_guard import ResourceGuard, ResourceKind, UsageMonitor
from .scheduler import SyncScheduler
from .service import SyncOutcome, SyncService, SyncStatus

__all__ = [
    "ReconcileResult",
    "ReconciliationCoordinator",
    "ResourceGuard",
    "ResourceKind",
    "SyncOutcome",
    "SyncScheduler",
    "SyncService",
    "SyncStatus",
    "UsageMonitor",
]
