"""
APScheduler configuration for background polls
"""

import atexit
import logging

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.tasks.polling import poll_notifications_with_context, poll_topups_with_context

logger = logging.getLogger(__name__)


def init_scheduler(app):
    """Initialize APScheduler with the notification and top-up polls"""

    # Jobs hold a reference to the app, so they can't be persisted.
    jobstores = {
        'default': MemoryJobStore()
    }

    executors = {
        'default': ThreadPoolExecutor(4),
    }

    job_defaults = {
        'coalesce': True,
        'max_instances': 1
    }

    scheduler = BackgroundScheduler(
        jobstores=jobstores,
        executors=executors,
        job_defaults=job_defaults,
        timezone=app.config.get('TIMEZONE', 'Asia/Manila')
    )

    scheduler.add_job(
        func=poll_notifications_with_context,
        trigger=IntervalTrigger(seconds=app.config.get('NOTIFICATION_POLL_SECONDS', 10)),
        id='poll_notifications',
        name='Refresh admin notifications',
        replace_existing=True,
        args=[app]
    )

    scheduler.add_job(
        func=poll_topups_with_context,
        trigger=IntervalTrigger(seconds=app.config.get('TOPUP_POLL_SECONDS', 30)),
        id='poll_topups',
        name='Refresh pending top-ups',
        replace_existing=True,
        args=[app]
    )

    scheduler.start()
    logger.info('Background scheduler started')

    app.scheduler = scheduler

    atexit.register(lambda: scheduler.shutdown(wait=False) if scheduler.running else None)

    return scheduler
