"""Serializers for job projections embedded in other apps' responses."""

from rest_framework import serializers

from jobs.models import Job


class JobSummarySerializer(serializers.ModelSerializer):
    """Compact job projection shown alongside a job-scoped conversation."""

    company_name = serializers.CharField(source="company.name", read_only=True)

    class Meta:
        model = Job
        fields = ["id", "title", "status", "company_name"]
        read_only_fields = fields
