import pytest

from catalog_sync.errors import CatalogFetchError
from catalog_sync.sync.coordinator import ReconciliationCoordinator
from catalog_sync.sync.resource_guard import ResourceGuard
from catalog_sync.sync.scheduler import SyncScheduler
from catalog_sync.sync.service import SyncService, SyncStatus

QUOTAS = {"requests": 1000}


class CountingCoordinator(ReconciliationCoordinator):
    def __init__(self, client, store):
        super().__init__(client, store)
        self.runs = 0

    async def reconcile(self):
        self.runs += 1
        return await super().reconcile()


def make_service(client, store, usage=None, min_interval=60.0, poll=60.0):
    usage = usage if usage is not None else {"requests": 0}
    coordinator = CountingCoordinator(client, store)
    service = SyncService(
        coordinator,
        SyncScheduler(min_interval_seconds=min_interval),
        ResourceGuard(QUOTAS, poll_interval_seconds=poll, clock=lambda: 0.0),
        usage_source=lambda: usage,
        clock=lambda: 0.0,
    )
    return service, coordinator, usage


@pytest.mark.asyncio
async def test_maybe_sync_debounces(client, store):
    service, coordinator, _ = make_service(client, store)

    first = await service.maybe_sync(now=1000.0)
    assert first.status is SyncStatus.COMPLETED
    assert first.result.synced == 5

    second = await service.maybe_sync(now=1010.0)
    assert second.status is SyncStatus.SKIPPED
    assert second.retry_after_seconds == 50.0
    assert coordinator.runs == 1

    third = await service.maybe_sync(now=1070.0)
    assert third.ran
    assert coordinator.runs == 2


@pytest.mark.asyncio
async def test_force_sync_ignores_debounce(client, store):
    service, coordinator, _ = make_service(client, store)
    await service.maybe_sync(now=1000.0)

    outcome = await service.force_sync(now=1001.0)

    assert outcome.ran
    assert coordinator.runs == 2


@pytest.mark.asyncio
async def test_open_breaker_blocks_both_triggers(client, store):
    service, coordinator, _ = make_service(client, store, usage={"requests": 900})

    maybe = await service.maybe_sync(now=0.0)
    forced = await service.force_sync(now=1.0)

    for outcome in (maybe, forced):
        assert outcome.status is SyncStatus.BLOCKED
        assert outcome.refusal.resource_kind == "requests"
        assert outcome.retry_after_seconds == 60
    assert coordinator.runs == 0
    payload = maybe.to_dict()
    assert payload["success"] is False
    assert payload["refusal"]["circuit_breaker_active"] is True


@pytest.mark.asyncio
async def test_blocked_trigger_does_not_consume_debounce_window(client, store):
    service, coordinator, usage = make_service(client, store, usage={"requests": 900}, poll=0.0)
    await service.maybe_sync(now=0.0)

    usage["requests"] = 10
    outcome = await service.maybe_sync(now=1.0)

    assert outcome.ran
    assert coordinator.runs == 1


@pytest.mark.asyncio
async def test_reset_breaker_allows_forced_sync(client, store):
    service, coordinator, usage = make_service(client, store, usage={"requests": 900})
    await service.force_sync(now=0.0)

    usage["requests"] = 10
    service.reset_breaker()
    outcome = await service.force_sync(now=1.0)

    assert outcome.ran
    assert coordinator.runs == 1


@pytest.mark.asyncio
async def test_fetch_failure_propagates_and_is_recorded(client, store):
    service, _, _ = make_service(client, store)
    client.failing_facets.add("items")

    with pytest.raises(CatalogFetchError):
        await service.maybe_sync(now=0.0)

    status = service.status(now=1.0)
    assert "Failed to fetch catalog items" in status["last_error"]
    assert status["runs_in_flight"] == 0
    # The failed run still counts against the debounce window.
    assert status["scheduler"]["due"] is False


@pytest.mark.asyncio
async def test_status_reports_last_result(client, store):
    service, _, _ = make_service(client, store)
    await service.maybe_sync(now=0.0)

    status = service.status(now=30.0)

    assert status["last_result"]["synced"] == 5
    assert status["scheduler"]["seconds_until_due"] == 30.0
    assert status["circuit_breaker"]["is_open"] is False


@pytest.mark.asyncio
async def test_reset_scheduler(client, store):
    service, coordinator, _ = make_service(client, store)
    await service.maybe_sync(now=0.0)
    service.reset_scheduler()
    assert (await service.maybe_sync(now=1.0)).ran
    assert coordinator.runs == 2
