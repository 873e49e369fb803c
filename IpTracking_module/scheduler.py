"""
Scheduler setup for background tasks.
Uses APScheduler to run the daily IP audit retention job.
"""
import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from config import settings
from Login_module.Utils.datetime_utils import local_zone
from .retention_job import retention_job

logger = logging.getLogger(__name__)

# Process-wide scheduler instance
scheduler = None


def start_scheduler():
    """
    Start the background scheduler.
    - IP audit retention: daily at RETENTION_CRON_HOUR:RETENTION_CRON_MINUTE local time
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler is already running")
        return scheduler

    scheduler = BackgroundScheduler(timezone=local_zone())

    scheduler.add_job(
        retention_job,
        trigger=CronTrigger(
            hour=settings.RETENTION_CRON_HOUR,
            minute=settings.RETENTION_CRON_MINUTE,
            timezone=local_zone(),
        ),
        id="ip_audit_retention",
        name="Delete expired IP audit entries",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )

    scheduler.start()
    logger.info(
        "Background scheduler started. IP retention scheduled daily at %02d:%02d.",
        settings.RETENTION_CRON_HOUR, settings.RETENTION_CRON_MINUTE
    )

    return scheduler


def shutdown_scheduler():
    """
    Shutdown the background scheduler.
    """
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("Background scheduler stopped.")
