"""
Lightweight in-memory document store for local development and tests.

Implements the StoreAdapter interface so the API and the reconciliation core
can run without a real database. It is NOT intended for production use.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Mapping, Optional

from catalog_sync.integrations.contracts.interfaces import StoreAdapter


class InMemoryStore(StoreAdapter):
    def __init__(self) -> None:
        # collection -> id -> document
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

    async def list_ids(self, collection: str) -> List[str]:
        return list(self._collections.get(collection, {}))

    async def upsert(self, collection: str, record_id: str, record: Mapping[str, Any]) -> None:
        # Full overwrite; callers never patch individual fields.
        self._collections.setdefault(collection, {})[record_id] = copy.deepcopy(dict(record))

    async def delete(self, collection: str, record_id: str) -> None:
        self._collections.get(collection, {}).pop(record_id, None)

    async def get_all(self, collection: str) -> List[Dict[str, Any]]:
        return [copy.deepcopy(doc) for doc in self._collections.get(collection, {}).values()]

    async def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        doc = self._collections.get(collection, {}).get(record_id)
        return copy.deepcopy(doc) if doc is not None else None

    # --- Misc -----------------------------------------------------------------

    def clear(self, collection: Optional[str] = None) -> None:
        if collection is None:
            self._collections.clear()
        else:
            self._collections.pop(collection, None)

    def ping(self) -> bool:
        return True
