"""Celery configuration for import runs."""

from __future__ import annotations

import asyncio
import os

from celery import Celery
from celery.schedules import crontab

from magento_sync.errors import GatewayError

broker_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")
backend_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")

celery_app = Celery("magento_sync", broker=broker_url, backend=backend_url)
celery_app.conf.timezone = "UTC"

if os.environ.get("IMPORT_SCHEDULE_HOUR"):
    celery_app.conf.beat_schedule = {
        "magento-import": {
            "task": "magento_sync.run_import",
            "schedule": crontab(
                hour=int(os.environ["IMPORT_SCHEDULE_HOUR"]),
                minute=int(os.environ.get("IMPORT_SCHEDULE_MINUTE", "0")),
            ),
        },
    }


@celery_app.task(
    name="magento_sync.run_import",
    autoretry_for=(GatewayError,),
    retry_backoff=True,
    max_retries=3,
)
def run_import_task(job_id: int | None = None):  # pragma: no cover - executed by worker
    from magento_sync.jobs.importer import run_import

    summary = asyncio.run(run_import(job_id))
    return summary.as_dict()
