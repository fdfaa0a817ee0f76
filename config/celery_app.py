"""Celery application for background attendance jobs.

Realtime work (sessions, chat fan-out) stays on the ASGI event loop; Celery
only runs jobs that may be triggered from plain HTTP views, such as an
admin-requested absentee sweep.
"""

import os

from celery import Celery
from celery.signals import setup_logging

# Deployed workers default to production settings. pytest sets
# DJANGO_SETTINGS_MODULE through --ds, so setdefault leaves it alone.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.production")

app = Celery("mission_control")

# All celery-related configuration keys use the `CELERY_` prefix in settings.
app.config_from_object("django.conf:settings", namespace="CELERY")


@setup_logging.connect
def config_loggers(*args, **kwargs):
    from logging.config import dictConfig  # noqa: PLC0415

    from django.conf import settings  # noqa: PLC0415

    dictConfig(settings.LOGGING)


# Picks up `tasks.py` from every installed app (attendance.tasks).
app.autodiscover_tasks()
