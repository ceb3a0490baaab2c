"""Celery application bootstrap.

Pipeline ticks and the approval expiry sweep run as Celery tasks:

- celery -A config worker -l info
- celery -A config beat -l info

Broker and result backend come from Django settings (CELERY_* namespace).
"""

from __future__ import annotations

import os

from celery import Celery

from config.env import load_env

load_env()

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("signal-pipeline")

app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up apps/<app>/tasks.py for every installed app.
app.autodiscover_tasks()
