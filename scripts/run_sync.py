#!/usr/bin/env python3
"""
Run one catalog reconciliation from the command line.

- default: honours the debounce window and the circuit breaker (maybe_sync)
- --force: skips the debounce, still honours the circuit breaker
- --dry-run: fetch and transform only, print what would be written

Store and catalog client are chosen from the environment exactly as the API does
(DATABASE_URL / REDIS_URL / CATALOG_MODE / SQUARE_ACCESS_TOKEN).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

from catalog_sync.database.memory import InMemoryStore
from catalog_sync.errors import CatalogFetchError, MalformedItemError
from catalog_sync.sync.coordinator import ReconciliationCoordinator
from catalog_sync.sync.factory import build_catalog_client, build_store, build_sync_service
from catalog_sync.sync.service import SyncStatus
from catalog_sync.sync.transformer import (
    count_products_by_category,
    normalize_category_name,
    parse_category,
    transform,
    transform_category,
)
from catalog_sync.utils.config_loader import load_sync_config


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


async def dry_run(cfg) -> int:
    client = build_catalog_client(cfg)
    coordinator = ReconciliationCoordinator(
        client, InMemoryStore(), settings=cfg.transform, config=cfg.reconcile, store_config=cfg.store
    )
    try:
        snapshot = await coordinator.fetch_snapshot()
    except CatalogFetchError as e:
        logging.getLogger(__name__).error("Catalog fetch failed: %s", e)
        return 2
    if snapshot.degraded_facets:
        print(f"Degraded facets (a real run would continue without them): {', '.join(snapshot.degraded_facets)}")

    categories = []
    for raw in snapshot.categories:
        try:
            categories.append(parse_category(raw))
        except MalformedItemError as e:
            print(f"  skipped category: {e}")
    products = []
    for raw in snapshot.items:
        try:
            product = transform(raw, categories, snapshot.inventory, cfg.transform)
        except MalformedItemError as e:
            print(f"  skipped item: {e}")
            continue
        if product is not None:
            products.append(product)

    counts = count_products_by_category(products)
    print(f"\n{len(products)} of {len(snapshot.items)} items would be synced\n")
    for p in products:
        print(f"  {p.id:<24} {p.name:<32} {p.category:<20} {p.price:>8} stock={p.stock}")
    print("\nCategories:")
    for c in categories:
        doc = transform_category(c)
        print(f"  {doc.id:<24} {doc.name:<32} products={counts.get(normalize_category_name(doc.name), 0)}")
    return 0


async def run(force: bool, cfg) -> int:
    store = build_store(cfg)
    client = build_catalog_client(cfg)
    service = build_sync_service(cfg, client, store)

    try:
        outcome = await (service.force_sync() if force else service.maybe_sync())
    except CatalogFetchError as e:
        logging.getLogger(__name__).error("Catalog fetch failed; store left unchanged: %s", e)
        return 2

    print(json.dumps(outcome.to_dict(), indent=2, default=str))
    if outcome.status is SyncStatus.BLOCKED:
        return 3
    if outcome.result is not None and outcome.result.errors:
        return 1
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Reconcile the storefront catalog with the upstream catalog")
    parser.add_argument("--force", action="store_true", help="Skip the debounce window")
    parser.add_argument("--dry-run", action="store_true", help="Fetch and transform only; write nothing")
    parser.add_argument("--config", type=Path, default=None, help="Path to sync_config.yml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    setup_logging(args.verbose)
    cfg = load_sync_config(args.config)

    if args.dry_run:
        return asyncio.run(dry_run(cfg))
    return asyncio.run(run(args.force, cfg))


if __name__ == "__main__":
    sys.exit(main())
