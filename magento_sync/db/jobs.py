"""Import job records backing the progress boundary."""

from __future__ import annotations

from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine

from magento_sync.db.schema import import_jobs

CREATED = "created"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"


def create_job(engine: Engine) -> int:
    with engine.begin() as conn:
        result = conn.execute(insert(import_jobs).values(status=CREATED, progress=0))
        return int(result.inserted_primary_key[0])


def get_job(engine: Engine, job_id: int) -> dict[str, Any] | None:
    with engine.connect() as conn:
        row = conn.execute(select(import_jobs).where(import_jobs.c.id == job_id)).mappings().first()
    return dict(row) if row else None


def _set(engine: Engine, job_id: int, **values: Any) -> None:
    with engine.begin() as conn:
        conn.execute(update(import_jobs).where(import_jobs.c.id == job_id).values(**values))


def mark_processing(engine: Engine, job_id: int) -> None:
    _set(engine, job_id, status=PROCESSING, progress=0)


def update_progress(engine: Engine, job_id: int, progress: int) -> None:
    _set(engine, job_id, progress=max(0, min(100, progress)))


def mark_completed(engine: Engine, job_id: int, result: dict[str, Any] | None = None) -> None:
    _set(engine, job_id, status=COMPLETED, result=result)


def mark_failed(engine: Engine, job_id: int, error: str) -> None:
    _set(engine, job_id, status=FAILED, result={"error": error})
