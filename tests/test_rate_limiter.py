import pytest

from catalog_sync.utils.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_no_delay_under_limit():
    clock = FakeClock()
    limiter = RateLimiter(requests_per_minute=3, clock=clock)
    for _ in range(3):
        await limiter.wait_if_needed()
    assert limiter.get_stats()["requests_in_last_minute"] == 3


@pytest.mark.asyncio
async def test_delay_needed_once_window_is_full():
    clock = FakeClock()
    limiter = RateLimiter(requests_per_minute=2, clock=clock)
    await limiter.wait_if_needed()
    clock.now = 10.0
    await limiter.wait_if_needed()

    assert limiter.delay_needed() == pytest.approx(50.1)
    clock.now = 61.0
    assert limiter.delay_needed() == 0.0


def test_zero_disables_limiting():
    assert RateLimiter(requests_per_minute=0).delay_needed() == 0.0
