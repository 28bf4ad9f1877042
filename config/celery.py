"""Celery application bootstrap for this Django project.

This drives the site generation pipeline in the background:
intake → optimize → synthesize → palette → render → persist → identity → notify.

Run a single generation worker plus the beat scheduler:
- celery -A config worker -Q generation -c 1 -l info
- celery -A config beat -l info

Broker/result backend are configured via Django settings (see config/settings.py).
"""

from __future__ import annotations

import os

from celery import Celery

from config.env import load_env

load_env()

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("sitegen")

# Load Celery config from Django settings using CELERY_* namespace.
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
