import asyncio

import pytest

from confpoll.core.rate_limiter import TokenBucketRateLimiter


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_bucket_starts_full_and_refills_at_qps() -> None:
    clock = FakeClock()
    limiter = TokenBucketRateLimiter(qps=2.0, burst=2.0, clock=clock)

    assert limiter.try_acquire()
    assert limiter.try_acquire()
    assert not limiter.try_acquire()

    clock.advance(0.5)
    assert limiter.try_acquire()
    assert not limiter.try_acquire()


def test_refill_is_capped_at_burst() -> None:
    clock = FakeClock()
    limiter = TokenBucketRateLimiter(qps=10.0, burst=1.0, clock=clock)
    assert limiter.try_acquire()

    clock.advance(60.0)
    assert limiter.available_tokens == pytest.approx(1.0)


@pytest.mark.parametrize("qps", [0.0, -1.0])
def test_non_positive_qps_rejected(qps: float) -> None:
    with pytest.raises(ValueError):
        TokenBucketRateLimiter(qps=qps)


@pytest.mark.asyncio
async def test_acquire_returns_immediately_with_token() -> None:
    limiter = TokenBucketRateLimiter(qps=1.0, clock=FakeClock())
    assert await limiter.acquire(timeout=0.0)


@pytest.mark.asyncio
async def test_acquire_refuses_when_wait_exceeds_timeout() -> None:
    clock = FakeClock()
    limiter = TokenBucketRateLimiter(qps=0.1, clock=clock)
    assert limiter.try_acquire()

    # next token is 10s away
    assert not await limiter.acquire(timeout=5.0)
    # refusal consumes nothing
    clock.advance(10.0)
    assert limiter.try_acquire()


@pytest.mark.asyncio
async def test_acquire_waits_when_token_is_close() -> None:
    limiter = TokenBucketRateLimiter(qps=50.0)
    assert limiter.try_acquire()

    loop = asyncio.get_running_loop()
    started = loop.time()
    assert await limiter.acquire(timeout=1.0)
    assert loop.time() - started >= 0.01


@pytest.mark.asyncio
async def test_concurrent_acquires_queue_behind_reservation() -> None:
    clock = FakeClock()
    limiter = TokenBucketRateLimiter(qps=100.0, clock=clock)
    assert limiter.try_acquire()

    # first waiter reserves the next token, second would wait 20ms
    results = await asyncio.gather(
        limiter.acquire(timeout=0.015), limiter.acquire(timeout=0.015)
    )
    assert sorted(results) == [False, True]


@pytest.mark.asyncio
async def test_interrupted_acquire_returns_reserved_token() -> None:
    clock = FakeClock()
    limiter = TokenBucketRateLimiter(qps=0.5, clock=clock)
    assert limiter.try_acquire()
    interrupt = asyncio.Event()

    # next token is 2s away, well inside the timeout
    waiter = asyncio.create_task(limiter.acquire(timeout=5.0, interrupt=interrupt))
    await asyncio.sleep(0.01)
    assert limiter.available_tokens == pytest.approx(-1.0)

    interrupt.set()
    assert not await asyncio.wait_for(waiter, timeout=1.0)
    assert limiter.available_tokens == pytest.approx(0.0)
    clock.advance(2.0)
    assert limiter.try_acquire()


@pytest.mark.asyncio
async def test_acquire_with_unset_interrupt_waits_out_the_token() -> None:
    limiter = TokenBucketRateLimiter(qps=50.0)
    assert limiter.try_acquire()

    assert await limiter.acquire(timeout=1.0, interrupt=asyncio.Event())
