"""
Unit tests for the rate-limit sweep scheduler

Tests job configuration and that the sweep job never raises.
"""
import asyncio

from coursehub.services.rate_limiter import RateLimiter
from coursehub.services.scheduler import (
    SWEEP_JOB_ID,
    configure_scheduler,
    start_scheduler,
    stop_scheduler,
    sweep_rate_limiter,
)


class Clock:
    now = 0.0

    def __call__(self):
        return self.now


def test_configure_registers_sweep_job():
    limiter = RateLimiter(10, 60)

    scheduler = configure_scheduler(limiter, sweep_interval_seconds=300)

    job = scheduler.get_job(SWEEP_JOB_ID)
    assert job is not None
    assert job.args == (limiter,)
    assert job.trigger.interval.total_seconds() == 300
    assert job.max_instances == 1
    assert job.coalesce is True


async def test_sweep_job_evicts_expired_windows():
    clock = Clock()
    limiter = RateLimiter(10, 60, clock=clock)
    limiter.hit("10.0.0.1")
    clock.now = 61

    evicted = await sweep_rate_limiter(limiter)

    assert evicted == 1
    assert len(limiter) == 0


async def test_sweep_job_swallows_failures():
    class BrokenLimiter:
        def sweep(self):
            raise RuntimeError("boom")

    assert await sweep_rate_limiter(BrokenLimiter()) == 0


async def test_start_and_stop():
    scheduler = start_scheduler(RateLimiter(10, 60), sweep_interval_seconds=300)
    assert scheduler.running

    stop_scheduler(scheduler)
    # AsyncIOScheduler applies the shutdown on its next loop turn
    await asyncio.sleep(0)

    assert not scheduler.running


def test_stop_is_safe_when_never_started():
    scheduler = configure_scheduler(RateLimiter(10, 60), sweep_interval_seconds=300)

    stop_scheduler(scheduler)

    assert not scheduler.running
