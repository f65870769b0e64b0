"""Background scheduler for periodic challenge sweeps."""

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from powgate.config import settings
from powgate.services.challenge_store import ChallengeStore

logger = logging.getLogger(__name__)


def sweep_job(store: ChallengeStore) -> None:
    """Remove challenges that outlived their TTL."""
    try:
        swept = store.sweep()
        if swept:
            logger.info(f"Sweep: removed {swept} expired challenges")
    except Exception as e:
        logger.error(f"Sweep failed: {e}")


def start_scheduler(store: ChallengeStore) -> BackgroundScheduler:
    """Start a background scheduler that sweeps ``store``."""
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        sweep_job,
        trigger=IntervalTrigger(seconds=settings.sweep_interval_seconds),
        args=[store],
        id="sweep_expired_challenges",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started - sweep runs every {settings.sweep_interval_seconds}s")
    return scheduler


def shutdown_scheduler(scheduler: BackgroundScheduler) -> None:
    """Shutdown the scheduler gracefully."""
    scheduler.shutdown(wait=False)
    logger.info("Scheduler stopped")
