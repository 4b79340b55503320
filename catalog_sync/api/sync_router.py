import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from catalog_sync.api.dependencies import api_key_protection, cron_protection
from catalog_sync.error_handler import ErrorHandler
from catalog_sync.errors import CatalogFetchError
from catalog_sync.sync.resource_guard import UsageMonitor
from catalog_sync.sync.service import SyncOutcome, SyncService, SyncStatus

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(api_key_protection)])
cron_router = APIRouter(dependencies=[Depends(cron_protection)])


# Will be set by main.py after import
sync_service: SyncService = None
usage_monitor: UsageMonitor = None
error_handler = ErrorHandler()


class BreakerResetRequest(BaseModel):
    reset_usage: bool = False


def _outcome_response(outcome: SyncOutcome) -> JSONResponse:
    if outcome.status is SyncStatus.BLOCKED:
        retry_after = max(1, math.ceil(outcome.retry_after_seconds or 1))
        return JSONResponse(
            status_code=503,
            content=outcome.to_dict(),
            headers={"Retry-After": str(retry_after)},
        )
    return JSONResponse(status_code=200, content=outcome.to_dict())


def _failure_response(exc: Exception, trigger: str) -> JSONResponse:
    payload = error_handler.handle_exception(exc, {"trigger": trigger})
    status_code = 502 if isinstance(exc, CatalogFetchError) else 500
    return JSONResponse(status_code=status_code, content=payload)


async def _maybe(trigger: str) -> JSONResponse:
    try:
        outcome = await sync_service.maybe_sync()
    except Exception as e:
        return _failure_response(e, trigger)
    return _outcome_response(outcome)


@router.post("/sync", tags=["Sync"])
async def trigger_sync():
    return await _maybe("admin")


@router.post("/sync/force", tags=["Sync"])
async def force_sync():
    try:
        outcome = await sync_service.force_sync()
    except Exception as e:
        return _failure_response(e, "force")
    return _outcome_response(outcome)


@router.get("/sync/status", tags=["Sync"])
async def sync_status():
    return {"success": True, **sync_service.status()}


@router.post("/sync/circuit-breaker/reset", tags=["Sync"])
async def reset_circuit_breaker(body: Optional[BreakerResetRequest] = None):
    sync_service.reset_breaker()
    if body is not None and body.reset_usage and usage_monitor is not None:
        usage_monitor.reset()
    logger.info("Circuit breaker reset by operator")
    return {"success": True, "circuit_breaker": sync_service.guard.status()}


@router.get("/resources/usage", tags=["Sync"])
async def resource_usage():
    usage = usage_monitor.stats() if usage_monitor is not None else {}
    return {"success": True, "usage": usage, "circuit_breaker": sync_service.guard.status()}


@cron_router.get("/cron/sync", tags=["Sync"])
@cron_router.post("/cron/sync", tags=["Sync"])
async def cron_sync():
    return await _maybe("cron")
