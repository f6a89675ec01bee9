"""
Background scheduler for periodic tasks.

- Sweep login/PIN attempt counters: every LOGIN_WINDOW_SECONDS (one hour)
- Database keep-alive probe: every KEEPALIVE_INTERVAL_SECONDS (four minutes)

Job failures are logged and never stop the scheduler.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError

from nivalus.core.config import settings
from nivalus.core.database import SessionLocal, ping
from nivalus.services.rate_limit import login_limiter, pin_limiter

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def sweep_attempt_counters_job():
    """Clear every attempt counter - a coarse global reset, not a sliding window"""
    dropped = login_limiter.sweep() + pin_limiter.sweep()
    if dropped:
        logger.info(f"Attempt counter sweep cleared {dropped} entries")


def database_keepalive_job():
    """Keep idle database connections from being dropped by the server"""
    db = SessionLocal()
    try:
        ping(db)
    except SQLAlchemyError as e:
        logger.error(f"Keep-alive query failed: {str(e)}")
    finally:
        db.close()


def start_scheduler():
    """
    Start the background scheduler.

    Called from the FastAPI lifespan on startup.
    """
    if not scheduler.running:
        scheduler.add_job(
            sweep_attempt_counters_job,
            trigger=IntervalTrigger(seconds=settings.LOGIN_WINDOW_SECONDS),
            id="sweep_attempt_counters",
            name="Sweep login and PIN attempt counters",
            replace_existing=True,
        )
        scheduler.add_job(
            database_keepalive_job,
            trigger=IntervalTrigger(seconds=settings.KEEPALIVE_INTERVAL_SECONDS),
            id="database_keepalive",
            name="Database keep-alive",
            replace_existing=True,
        )

        scheduler.start()
        logger.info("Background scheduler started.")


def stop_scheduler():
    """Stop the background scheduler on shutdown"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped.")
