"""
Jobs application.

Companies and their job postings. The chat app uses a job as optional
context for a conversation; this app also expires approved postings
once their plan's post duration has elapsed.

Usage:
    from jobs.models import Company, Job
    from jobs.services import JobDirectory, JobExpiryService
"""
