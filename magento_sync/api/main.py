"""FastAPI application for triggering and tracking imports."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel
from sqlalchemy.engine import Engine

from magento_sync.db import jobs
from magento_sync.db.session import create_engine_from_env
from magento_sync.jobs.importer import start_import

logger = logging.getLogger(__name__)

app = FastAPI(title="Magento Import API")


class ImportStarted(BaseModel):
    job_id: int
    status: str


class ImportStatus(BaseModel):
    job_id: int
    status: str
    progress: int
    result: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


def get_engine() -> Engine:
    return create_engine_from_env()


@app.post("/imports", response_model=ImportStarted, status_code=202)
async def create_import(engine: Engine = Depends(get_engine)) -> ImportStarted:
    job_id = start_import(engine)
    return ImportStarted(job_id=job_id, status=jobs.CREATED)


@app.get("/imports/{job_id}", response_model=ImportStatus)
async def import_status(job_id: int, engine: Engine = Depends(get_engine)) -> ImportStatus:
    job = jobs.get_job(engine, job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Import job not found")
    return ImportStatus(
        job_id=job["id"],
        status=job["status"],
        progress=job["progress"],
        result=job["result"],
        created_at=job["created_at"],
        updated_at=job["updated_at"],
    )
