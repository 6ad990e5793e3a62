"""
Celery configuration for the credits backend.

Celery runs the periodic balance reconciliation pass and any other
background work. Schedules live in the database (django-celery-beat) and are
created by data migrations, so `celery beat` needs no static schedule here.

Usage:
    # Start a worker and the beat scheduler:
    celery -A config worker -l info
    celery -A config beat -l info

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("credits_backend")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Looks for a tasks.py module in each installed app
app.autodiscover_tasks()
