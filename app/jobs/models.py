"""
Job board models.

This module defines:
- Company: Employer organization with the post duration of its plan
- Job: A job posting moderated through pending/approved/rejected/expired

Related files:
    - services.py: JobDirectory lookups and JobExpiryService
    - tasks.py: Periodic expiry task
"""

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class JobStatus(models.TextChoices):
    """Moderation lifecycle of a job posting."""

    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    EXPIRED = "expired", "Expired"


class Company(UUIDPrimaryKeyMixin, BaseModel):
    """
    Employer organization.

    Fields:
        name: Display name
        owner: Employer account that manages the company
        post_duration_days: How long an approved post stays live under the
            company's current plan; null when the plan sets no limit
    """

    name = models.CharField(
        max_length=200,
        help_text="Company display name",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="companies",
        help_text="Employer account that manages this company",
    )
    post_duration_days = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Days an approved post stays live (null = no limit)",
    )

    class Meta:
        db_table = "jobs_company"
        verbose_name_plural = "companies"
        ordering = ["name"]

    def __str__(self):
        return self.name


class Job(UUIDPrimaryKeyMixin, BaseModel):
    """
    A job posting.

    Only approved posts are publicly visible. Expired posts stay in the
    database and remain valid context for existing conversations.
    """

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="jobs",
    )
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="posted_jobs",
    )
    status = models.CharField(
        max_length=20,
        choices=JobStatus.choices,
        default=JobStatus.PENDING,
        db_index=True,
    )

    class Meta:
        db_table = "jobs_job"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["status", "created_at"],
                name="jobs_job_status_created_idx",
            ),
        ]

    def __str__(self):
        return f"{self.title} ({self.company})"
