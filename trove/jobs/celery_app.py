"""Celery configuration for scheduled jobs."""

from __future__ import annotations

import os

from celery import Celery
from celery.schedules import crontab

from trove.utils.dates import timezone_name

broker_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")
backend_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")

celery_app = Celery("trove", broker=broker_url, backend=backend_url, include=["trove.jobs.notifications"])
celery_app.conf.timezone = timezone_name()
celery_app.conf.beat_schedule = {
    "notification-tasks": {
        "task": "trove.jobs.notifications.run_notifications",
        "schedule": crontab(hour=int(os.environ.get("NOTIFY_HOUR", "0")), minute=int(os.environ.get("NOTIFY_MINUTE", "0"))),
    },
}


@celery_app.task(name="trove.jobs.notifications.run_notifications")
def run_notifications_task():  # pragma: no cover - executed by worker
    import asyncio

    from trove.jobs.notifications import run_notifications

    result = asyncio.run(run_notifications())
    if not result["success"]:
        raise RuntimeError(result["error"])
    return result
