"""
Error taxonomy for catalog reconciliation.

- CatalogFetchError: the upstream catalog could not be read; aborts the run.
- MalformedItemError: a raw upstream record failed boundary validation.
- ItemSyncError: a single write/transform failed; recorded, never raised out of a run.
- QuotaRefusal: structured refusal returned while the resource guard is open.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


class CatalogSyncError(Exception):
    """Base class for catalog sync failures."""


class CatalogFetchError(CatalogSyncError):
    def __init__(self, message: str, *, facet: str = "items") -> None:
        super().__init__(message)
        self.facet = facet


class MalformedItemError(CatalogSyncError, ValueError):
    def __init__(self, message: str, *, item_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.item_id = item_id


class ItemSyncError(CatalogSyncError):
    def __init__(self, message: str, *, collection: str, record_id: str, operation: str) -> None:
        super().__init__(message)
        self.collection = collection
        self.record_id = record_id
        self.operation = operation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection": self.collection,
            "id": self.record_id,
            "operation": self.operation,
            "message": str(self),
        }


@dataclass
class QuotaRefusal:
    reason: str
    resource_kind: str
    percentage: float
    retry_after_seconds: int
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["percentage"] = round(self.percentage, 1)
        payload["circuit_breaker_active"] = True
        return payload
