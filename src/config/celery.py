"""
Celery configuration for the storefront order service.

``DJANGO_SETTINGS_MODULE`` is set before the app is instantiated so that
Celery reads its configuration from Django settings (``CELERY_`` prefix).
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("storefront")

# Read configuration from Django settings using the CELERY_ namespace
app.config_from_object("django.conf:settings", namespace="CELERY")

# Discover tasks.py in every installed app
app.autodiscover_tasks()
