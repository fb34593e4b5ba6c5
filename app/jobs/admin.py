"""
Django admin configuration for job models.
"""

from django.contrib import admin

from jobs.models import Company, Job


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("name", "owner", "post_duration_days", "created_at")
    search_fields = ("name", "owner__email")
    raw_id_fields = ("owner",)


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ("title", "company", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("title", "company__name")
    raw_id_fields = ("company", "posted_by")
    readonly_fields = ("created_at", "updated_at")
