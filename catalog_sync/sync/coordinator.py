"""
Catalog reconciliation.

Makes the stored product/category mirror equal the upstream catalog:

1. fetch items, categories and inventory (concurrently, each under a timeout)
2. transform items into the desired set, keyed by id
3. read the current set of stored ids
4. upsert every desired product
5. delete every stored id that is not desired
6. upsert categories with recomputed product counts (and drop orphan categories)

Upserts and deletes are independent per id and order-insensitive. A failing
write is recorded in the result and never stops the remaining writes; only a
failure to fetch catalog items aborts the run.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Set, Tuple

from pydantic import TypeAdapter, ValidationError

from catalog_sync.errors import CatalogFetchError, ItemSyncError, MalformedItemError
from catalog_sync.integrations.contracts.catalog import RawCategory, RawItem
from catalog_sync.integrations.contracts.interfaces import CatalogClient, Category, Product, StoreAdapter
from catalog_sync.sync.transformer import (
    count_products_by_category,
    normalize_category_name,
    parse_category,
    transform,
    transform_category,
)
from catalog_sync.utils.config_loader import ReconcileConfig, StoreConfig, TransformSettings

logger = logging.getLogger(__name__)

_INVENTORY = TypeAdapter(Dict[str, int])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_record_list(value: Any, model: type) -> bool:
    return isinstance(value, list) and all(isinstance(v, (Mapping, model)) for v in value)


@dataclass
class CatalogSnapshot:
    """Validated upstream facets for one run."""

    items: List[Any] = field(default_factory=list)
    categories: List[Any] = field(default_factory=list)
    inventory: Dict[str, int] = field(default_factory=dict)
    degraded_facets: List[str] = field(default_factory=list)


@dataclass
class ReconcileResult:
    synced: int = 0
    deleted: int = 0
    errors: List[ItemSyncError] = field(default_factory=list)
    categories_synced: int = 0
    categories_deleted: int = 0
    excluded: int = 0
    degraded_facets: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "synced": self.synced,
            "deleted": self.deleted,
            "errors": [e.to_dict() for e in self.errors],
            "error_count": len(self.errors),
            "categories_synced": self.categories_synced,
            "categories_deleted": self.categories_deleted,
            "excluded": self.excluded,
            "degraded_facets": list(self.degraded_facets),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class ReconciliationCoordinator:
    def __init__(
        self,
        client: CatalogClient,
        store: StoreAdapter,
        settings: Optional[TransformSettings] = None,
        config: Optional[ReconcileConfig] = None,
        store_config: Optional[StoreConfig] = None,
        now_fn: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.client = client
        self.store = store
        self.settings = settings or TransformSettings()
        self.config = config or ReconcileConfig()
        self.store_config = store_config or StoreConfig()
        self._now = now_fn

    @property
    def products_collection(self) -> str:
        return self.store_config.products_collection

    @property
    def categories_collection(self) -> str:
        return self.store_config.categories_collection

    # ------------------------------------------------------------------ #
    # Entry point
    # ------------------------------------------------------------------ #
    async def reconcile(self) -> ReconcileResult:
        result = ReconcileResult(started_at=self._now())
        logger.info("Starting catalog reconciliation")

        snapshot = await self.fetch_snapshot()
        result.degraded_facets.extend(snapshot.degraded_facets)

        categories, category_names, malformed_categories = self._transform_categories(snapshot.categories, result)
        desired, protected = self._build_desired(snapshot.items, category_names, snapshot.inventory, result)
        logger.info(
            "Desired set: %d products (%d excluded, %d malformed) from %d items",
            len(desired), result.excluded, len(protected), len(snapshot.items),
        )

        semaphore = asyncio.Semaphore(self.config.max_concurrent_writes)
        stamp = self._now()

        current_ids = await self._list_ids(self.products_collection, result)

        upserts = [
            self._apply(
                semaphore, result, self.products_collection, "upsert", product.id,
                lambda p=product: self.store.upsert(
                    self.products_collection, p.id, replace(p, last_synced_at=stamp).to_document()
                ),
            )
            for product in desired.values()
        ]
        result.synced = sum(await asyncio.gather(*upserts))

        if current_ids is not None:
            orphans = set(current_ids) - set(desired) - protected
            deletes = [
                self._apply(
                    semaphore, result, self.products_collection, "delete", record_id,
                    lambda r=record_id: self.store.delete(self.products_collection, r),
                )
                for record_id in orphans
            ]
            result.deleted = sum(await asyncio.gather(*deletes))

        await self._sync_categories(semaphore, result, categories, malformed_categories, desired.values(), stamp)

        result.finished_at = self._now()
        logger.info(
            "Reconciliation complete: %d synced, %d deleted, %d categories, %d errors",
            result.synced, result.deleted, result.categories_synced, len(result.errors),
        )
        return result

    # ------------------------------------------------------------------ #
    # Fetch
    # ------------------------------------------------------------------ #
    async def _fetch(self, facet: str, fetch: Callable[[], Awaitable[Any]]) -> Tuple[Any, Optional[BaseException]]:
        try:
            value = await asyncio.wait_for(fetch(), timeout=self.config.fetch_timeout_seconds)
            logger.debug("Fetched %s facet", facet)
            return value, None
        except Exception as e:
            return None, e

    async def fetch_snapshot(self) -> CatalogSnapshot:
        """
        Fetch the three upstream facets and validate their shape.

        A missing or malformed items facet raises CatalogFetchError. A failing or
        malformed categories/inventory facet is replaced by an empty value and
        listed in `degraded_facets`.
        """
        (items, items_error), (categories, categories_error), (inventory, inventory_error) = await asyncio.gather(
            self._fetch("items", self.client.get_catalog_items),
            self._fetch("categories", self.client.get_categories),
            self._fetch("inventory", self.client.get_inventory_counts),
        )
        snapshot = CatalogSnapshot()

        if items_error is not None:
            logger.error("Catalog items fetch failed; aborting reconciliation: %s", items_error)
            raise CatalogFetchError(f"Failed to fetch catalog items: {items_error}", facet="items") from items_error
        if not _is_record_list(items, RawItem):
            logger.error("Catalog items payload is malformed (%s); aborting reconciliation", type(items).__name__)
            raise CatalogFetchError(
                f"Malformed catalog items payload: expected a list of objects, got {type(items).__name__}",
                facet="items",
            )
        snapshot.items = list(items)

        if categories_error is None and not _is_record_list(categories, RawCategory):
            categories_error = TypeError(f"expected a list of objects, got {type(categories).__name__}")
        if categories_error is not None:
            logger.warning("Category fetch failed; continuing without categories: %s", categories_error)
            snapshot.degraded_facets.append("categories")
        else:
            snapshot.categories = list(categories)

        if inventory_error is None:
            try:
                snapshot.inventory = _INVENTORY.validate_python(inventory)
            except ValidationError as e:
                inventory_error = e
        if inventory_error is not None:
            logger.warning("Inventory fetch failed; default stock will be used: %s", inventory_error)
            snapshot.degraded_facets.append("inventory")
            snapshot.inventory = {}

        return snapshot

    # ------------------------------------------------------------------ #
    # Transform
    # ------------------------------------------------------------------ #
    def _transform_categories(
        self, raw_categories: List[Any], result: ReconcileResult
    ) -> Tuple[Dict[str, Category], Dict[str, str], Set[str]]:
        categories: Dict[str, Category] = {}
        names: Dict[str, str] = {}
        malformed: Set[str] = set()
        for raw in raw_categories:
            try:
                parsed = parse_category(raw)
            except MalformedItemError as e:
                self._record(result, self.categories_collection, e.item_id or "<unknown>", "transform", e)
                if e.item_id:
                    malformed.add(e.item_id)
                continue
            category = transform_category(parsed)
            categories[category.id] = category
            if parsed.name:
                names[parsed.id] = parsed.name
        return categories, names, malformed

    def _build_desired(
        self,
        items: List[Any],
        category_names: Dict[str, str],
        inventory: Dict[str, int],
        result: ReconcileResult,
    ) -> Tuple[Dict[str, Product], Set[str]]:
        desired: Dict[str, Product] = {}
        protected: Set[str] = set()
        for raw in items:
            try:
                product = transform(raw, inventory=inventory, settings=self.settings, category_names=category_names)
            except MalformedItemError as e:
                self._record(result, self.products_collection, e.item_id or "<unknown>", "transform", e)
                if e.item_id:
                    protected.add(e.item_id)
                continue
            if product is None:
                result.excluded += 1
                continue
            desired[product.id] = product
        return desired, protected

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #
    async def _list_ids(self, collection: str, result: ReconcileResult) -> Optional[List[str]]:
        try:
            return await asyncio.wait_for(self.store.list_ids(collection), timeout=self.config.operation_timeout_seconds)
        except Exception as e:
            # Without the current set no orphan can be identified; upserts still go ahead.
            self._record(result, collection, "*", "list", e)
            return None

    async def _apply(
        self,
        semaphore: asyncio.Semaphore,
        result: ReconcileResult,
        collection: str,
        operation: str,
        record_id: str,
        write: Callable[[], Awaitable[None]],
    ) -> bool:
        async with semaphore:
            try:
                await asyncio.wait_for(write(), timeout=self.config.operation_timeout_seconds)
                return True
            except Exception as e:
                self._record(result, collection, record_id, operation, e)
                return False

    def _record(self, result: ReconcileResult, collection: str, record_id: str, operation: str, exc: BaseException) -> None:
        if isinstance(exc, asyncio.TimeoutError):
            message = f"{operation} timed out after {self.config.operation_timeout_seconds:g}s"
        else:
            message = str(exc) or type(exc).__name__
        error = ItemSyncError(message, collection=collection, record_id=record_id, operation=operation)
        error.__cause__ = exc
        result.errors.append(error)
        logger.error("Failed to %s %s/%s: %s", operation, collection, record_id, message)

    async def _sync_categories(
        self,
        semaphore: asyncio.Semaphore,
        result: ReconcileResult,
        categories: Dict[str, Category],
        malformed: Set[str],
        products,
        stamp: datetime,
    ) -> None:
        counts = count_products_by_category(products)
        upserts = []
        for category in categories.values():
            counted = replace(
                category,
                product_count=counts.get(normalize_category_name(category.name), 0),
                last_synced_at=stamp,
            )
            upserts.append(
                self._apply(
                    semaphore, result, self.categories_collection, "upsert", counted.id,
                    lambda c=counted: self.store.upsert(self.categories_collection, c.id, c.to_document()),
                )
            )
        result.categories_synced = sum(await asyncio.gather(*upserts))

        if "categories" in result.degraded_facets:
            return

        current_ids = await self._list_ids(self.categories_collection, result)
        if current_ids is None:
            return
        deletes = [
            self._apply(
                semaphore, result, self.categories_collection, "delete", record_id,
                lambda r=record_id: self.store.delete(self.categories_collection, r),
            )
            for record_id in set(current_ids) - set(categories) - malformed
        ]
        result.categories_deleted = sum(await asyncio.gather(*deletes))
