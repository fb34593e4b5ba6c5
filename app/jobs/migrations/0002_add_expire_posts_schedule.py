"""
Add celery-beat schedule for expiring job posts.

This migration creates the periodic task schedule for the
expire_job_posts task, which runs every hour to move approved
posts past their plan duration to expired.
"""

from django.db import migrations


def create_periodic_task(apps, schema_editor):
    """Create the periodic task for expiring job posts."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    # Create interval schedule: every hour
    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=1,
        period="hours",
    )

    PeriodicTask.objects.get_or_create(
        name="Expire Job Posts",
        defaults={
            "task": "jobs.tasks.expire_job_posts",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Moves approved job posts whose plan post duration has "
                "elapsed to the expired status."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name="Expire Job Posts").delete()


class Migration(migrations.Migration):
    dependencies = [
        ("jobs", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
