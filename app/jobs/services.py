"""
Job services.

- JobDirectory: existence lookups used to validate chat job context
- JobExpiryService: moves approved posts past their plan duration to expired

Related files:
    - models.py: Company, Job
    - tasks.py: expire_job_posts (hourly via celery-beat)
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone

from core.helpers import validate_uuid
from core.services import BaseService
from jobs.models import Company, Job, JobStatus

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any


class JobDirectory:
    """
    Read-only job lookups.

    Usage:
        job = JobDirectory.get(job_id)
        if job is None:
            return ServiceResult.failure("Job not found", "JOB_NOT_FOUND")
    """

    @staticmethod
    def exists(job_id: Any) -> bool:
        return JobDirectory.get(job_id) is not None

    @staticmethod
    def get(job_id: Any) -> Job | None:
        """Return the job with this id (any status), or None for unknown/malformed ids."""
        if not validate_uuid(str(job_id)):
            return None
        return Job.objects.select_related("company").filter(pk=job_id).first()


class JobExpiryService(BaseService):
    """
    Expire approved job posts whose plan duration has elapsed.

    A post expires when created_at + post_duration_days is in the past.
    The duration comes from the company's plan; companies without one use
    JOBS_DEFAULT_POST_DURATION_DAYS, and never expire when that is unset.
    """

    @classmethod
    def expire_posts(cls, now: datetime | None = None) -> int:
        """
        Mark every overdue approved post as expired.

        Args:
            now: Reference time (defaults to timezone.now())

        Returns:
            Number of posts moved to expired
        """
        now = now or timezone.now()
        expired = 0

        durations = (
            Company.objects.filter(
                jobs__status=JobStatus.APPROVED,
                post_duration_days__isnull=False,
            )
            .values_list("post_duration_days", flat=True)
            .distinct()
        )
        for days in durations:
            expired += Job.objects.filter(
                status=JobStatus.APPROVED,
                company__post_duration_days=days,
                created_at__lt=now - timedelta(days=days),
            ).update(status=JobStatus.EXPIRED, updated_at=now)

        default_days = getattr(settings, "JOBS_DEFAULT_POST_DURATION_DAYS", None)
        if default_days is not None:
            expired += Job.objects.filter(
                status=JobStatus.APPROVED,
                company__post_duration_days__isnull=True,
                created_at__lt=now - timedelta(days=default_days),
            ).update(status=JobStatus.EXPIRED, updated_at=now)

        if expired:
            cls.get_logger().info(f"Expired {expired} job post(s)")
        return expired
