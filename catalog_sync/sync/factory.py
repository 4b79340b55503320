"""
Wiring for the sync engine: picks the catalog client and document store from
configuration and environment, and assembles the trigger surface.

Environment:
- DATABASE_URL  -> PostgresStore (tables created on startup)
- REDIS_URL     -> RedisStore
- neither       -> InMemoryStore
- CATALOG_MODE (auto|mock|real) overrides `catalog.mode`; in auto mode the
  Square client is used when SQUARE_ACCESS_TOKEN is set.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from catalog_sync.integrations.contracts.interfaces import CatalogClient, StoreAdapter
from catalog_sync.sync.coordinator import ReconciliationCoordinator
from catalog_sync.sync.resource_guard import ResourceGuard, UsageMonitor
from catalog_sync.sync.scheduler import SyncScheduler
from catalog_sync.sync.service import SyncService
from catalog_sync.utils.config_loader import DEFAULT_CONFIG_PATH, SyncConfig

logger = logging.getLogger(__name__)

REPO_ROOT = DEFAULT_CONFIG_PATH.parent.parent


def resolve_catalog_mode(cfg: SyncConfig) -> str:
    mode = (os.getenv("CATALOG_MODE") or cfg.catalog.mode).strip().lower()
    if mode not in ("auto", "mock", "real"):
        raise ValueError(f"Unknown CATALOG_MODE '{mode}' (expected auto, mock or real)")
    if mode == "auto":
        return "real" if os.getenv("SQUARE_ACCESS_TOKEN") else "mock"
    return mode


def build_catalog_client(cfg: SyncConfig) -> CatalogClient:
    if resolve_catalog_mode(cfg) == "real":
        from catalog_sync.integrations.clients.real_http.square_catalog import SquareCatalogClient

        logger.info("Using Square catalog client (%s)", cfg.catalog.environment)
        return SquareCatalogClient(config=cfg.catalog)

    from catalog_sync.integrations.clients.mocks.local_catalog import LocalCatalogClient

    fixture = Path(cfg.catalog.fixture_path)
    if not fixture.is_absolute():
        fixture = REPO_ROOT / fixture
    logger.info("Using local catalog fixture client")
    return LocalCatalogClient(fixture_path=fixture)


def build_store(cfg: SyncConfig) -> StoreAdapter:
    if os.getenv("DATABASE_URL"):
        from catalog_sync.database.postgres_store import PostgresStore

        store = PostgresStore(connection_string=os.environ["DATABASE_URL"])
        store.create_tables()
        logger.info("Using Postgres document store")
        return store

    if os.getenv("REDIS_URL"):
        from catalog_sync.database.redis_store import RedisStore

        logger.info("Using Redis document store")
        return RedisStore(url=os.environ["REDIS_URL"], prefix=cfg.store.redis_prefix)

    from catalog_sync.database.memory import InMemoryStore

    logger.warning("No DATABASE_URL or REDIS_URL set; catalog documents are kept in memory only")
    return InMemoryStore()


def build_sync_service(
    cfg: SyncConfig,
    client: CatalogClient,
    store: StoreAdapter,
    usage_monitor: Optional[UsageMonitor] = None,
) -> SyncService:
    coordinator = ReconciliationCoordinator(
        client,
        store,
        settings=cfg.transform,
        config=cfg.reconcile,
        store_config=cfg.store,
    )
    scheduler = SyncScheduler(min_interval_seconds=cfg.scheduler.min_interval_seconds)
    guard = ResourceGuard(
        quotas=cfg.guard.quotas,
        thresholds=cfg.guard.thresholds,
        poll_interval_seconds=cfg.guard.poll_interval_seconds,
    )
    usage_source = usage_monitor.snapshot if usage_monitor is not None else None
    return SyncService(coordinator, scheduler, guard, usage_source=usage_source)
