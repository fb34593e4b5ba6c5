"""
Celery tasks for jobs app.

This module defines periodic tasks for:
- Expiring approved job posts past their plan duration

Usage:
    from jobs.tasks import expire_job_posts

    expire_job_posts.delay()
"""

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def expire_job_posts(self) -> int:
    """
    Move overdue approved job posts to expired.

    Scheduled hourly by the celery-beat entry created in
    jobs/migrations/0002_add_expire_posts_schedule.py.

    Returns:
        Number of posts expired
    """
    from jobs.services import JobExpiryService

    count = JobExpiryService.expire_posts()
    logger.info(f"expire_job_posts finished: {count} post(s) expired")
    return count
