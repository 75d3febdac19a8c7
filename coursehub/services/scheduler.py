"""
APScheduler Configuration

Runs the periodic rate-limiter sweep that evicts expired client windows so the
counter map stays bounded under address churn.
"""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from coursehub.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "rate_limit_sweep"


async def sweep_rate_limiter(limiter: RateLimiter) -> int:
    """
    Periodic job evicting expired rate-limit windows.

    Declared async so it runs on the event loop rather than in the
    scheduler's thread pool.
    """
    try:
        evicted = limiter.sweep()
        logger.debug(f"Rate limiter sweep complete: {evicted} evicted, {len(limiter)} tracked")
        return evicted
    except Exception as e:
        logger.error(f"Rate limiter sweep failed: {e}", exc_info=True)
        return 0


def configure_scheduler(limiter: RateLimiter, sweep_interval_seconds: float) -> AsyncIOScheduler:
    """
    Build a scheduler with the rate-limit sweep job.

    Args:
        limiter: Limiter whose expired windows are evicted
        sweep_interval_seconds: Seconds between sweeps

    Returns:
        Configured, not yet started, scheduler
    """
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        sweep_rate_limiter,
        trigger=IntervalTrigger(seconds=sweep_interval_seconds),
        args=[limiter],
        id=SWEEP_JOB_ID,
        name="Sweep Expired Rate Limit Windows",
        replace_existing=True,
        coalesce=True,  # Combine missed runs into single execution
        max_instances=1,  # Only one instance at a time
    )
    logger.info(f"Scheduler configured with rate limit sweep every {sweep_interval_seconds}s")
    return scheduler


def start_scheduler(limiter: RateLimiter, sweep_interval_seconds: float) -> AsyncIOScheduler:
    """Configure and start the scheduler on the running event loop"""
    scheduler = configure_scheduler(limiter, sweep_interval_seconds)
    scheduler.start()
    logger.info("Scheduler started")
    return scheduler


def stop_scheduler(scheduler: AsyncIOScheduler) -> None:
    """
    Request shutdown without waiting for a running sweep.

    AsyncIOScheduler applies the shutdown on its event loop, so the scheduler
    only reports not running once the loop has had a turn.
    """
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shutdown requested")
