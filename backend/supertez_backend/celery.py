"""Celery application for background ride and subscription jobs."""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "supertez_backend.settings.settings")

app = Celery("supertez_backend")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
