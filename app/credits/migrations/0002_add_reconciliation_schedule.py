"""
Add celery-beat schedule for balance reconciliation.

This migration creates the periodic task schedule for the
reconcile_credit_balances task, which runs every hour to compare each
cached balance with the sum of its transaction log.
"""

from django.db import migrations

TASK_NAME = "Reconcile Credit Balances"


def create_periodic_task(apps, schema_editor):
    """Create the hourly reconciliation task."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=1,
        period="hours",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "credits.tasks.reconcile_credit_balances",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Compares CreditAccount balances with the sum of their "
                "transactions and records BalanceDiscrepancy rows on mismatch."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")
    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("credits", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
