"""
FastAPI application - Main entry point
"""

from dotenv import load_dotenv

load_dotenv()

import logging
import os
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

import catalog_sync.api.storefront_router as storefront_module
import catalog_sync.api.sync_router as sync_module
from catalog_sync.api.storefront_router import router as storefront_router
from catalog_sync.api.sync_router import cron_router, router as sync_router
from catalog_sync.sync.factory import build_catalog_client, build_store, build_sync_service
from catalog_sync.sync.resource_guard import UsageMonitor
from catalog_sync.utils.config_loader import load_sync_config

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Catalog Sync API",
    description="Keeps the storefront product catalog converged with the upstream POS catalog",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================

sync_cfg = load_sync_config()
store = build_store(sync_cfg)
catalog_client = build_catalog_client(sync_cfg)
usage_monitor = UsageMonitor(quotas=sync_cfg.guard.quotas)
sync_service = build_sync_service(sync_cfg, catalog_client, store, usage_monitor=usage_monitor)

storefront_module.store = store
storefront_module.sync_service = sync_service
storefront_module.catalog_client = catalog_client
storefront_module.store_config = sync_cfg.store
storefront_module.transform_settings = sync_cfg.transform

sync_module.sync_service = sync_service
sync_module.usage_monitor = usage_monitor

app.include_router(storefront_router, prefix="/api/v1")
app.include_router(sync_router, prefix="/api/v1")
app.include_router(cron_router, prefix="/api/v1")


@app.middleware("http")
async def track_usage(request: Request, call_next):
    """Feed every handled request into the usage counters the circuit breaker reads."""
    usage_monitor.track_invocation()
    response = await call_next(request)
    try:
        size = int(response.headers.get("content-length") or 0)
    except ValueError:
        size = 0
    usage_monitor.track_request(size)
    return response


@app.get("/health", tags=["Health"])
async def health_check():
    ping = getattr(store, "ping", None)
    return {
        "status": "healthy",
        "store": type(store).__name__,
        "store_reachable": ping() if callable(ping) else None,
        "catalog_client": type(catalog_client).__name__,
        "circuit_breaker_open": sync_service.guard.is_open,
        "timestamp": datetime.now().isoformat(),
    }
