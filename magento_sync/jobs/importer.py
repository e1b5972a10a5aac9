"""Magento import orchestration."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from magento_sync.config import Settings
from magento_sync.db import jobs
from magento_sync.db.catalog import CatalogStore, StoreContext
from magento_sync.db.session import create_engine_from_env
from magento_sync.db.watermark import read_watermark, write_watermark
from magento_sync.errors import CatalogConflictError, GatewayError
from magento_sync.ingest.magento import MagentoClient
from magento_sync.ingest.models import CONFIGURABLE, SIMPLE, SourceCategory
from magento_sync.logic.categories import CategoryReconciler
from magento_sync.logic.outcome import Outcome
from magento_sync.logic.products import ProductReconciler
from magento_sync.utils.dates import watermark_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class ImportSummary:
    categories: Counter = field(default_factory=Counter)
    configurable: Counter = field(default_factory=Counter)
    simple: Counter = field(default_factory=Counter)
    watermark: str | None = None
    skipped: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "categories": {outcome.value: count for outcome, count in self.categories.items()},
            "configurable": {outcome.value: count for outcome, count in self.configurable.items()},
            "simple": {outcome.value: count for outcome, count in self.simple.items()},
            "watermark": self.watermark,
            "skipped": self.skipped,
        }


class ImportRunner:
    def __init__(
        self,
        engine: Engine,
        client: MagentoClient,
        *,
        concurrency: int = 4,
        job_id: int | None = None,
    ) -> None:
        self.engine = engine
        self.client = client
        self.concurrency = max(1, concurrency)
        self.job_id = job_id

    async def run(self) -> ImportSummary:
        summary = ImportSummary()
        with self.engine.connect() as conn:
            catalog = CatalogStore(conn)
            context = catalog.store_context()
            since = read_watermark(catalog, context.store_id) if context else None
        if context is None:
            logger.info("Skipping Magento import since no store exists in the catalog.")
            summary.skipped = True
            return summary

        logger.info("Importing categories from Magento...")
        categories = await self.client.fetch_categories(since)
        summary.categories = await self._run_phase(categories, self._sync_category)
        if categories:
            logger.info("%s categories have been imported or updated successfully.", len(categories))
        else:
            logger.info("No categories have been imported or updated.")
        self._progress(33)

        logger.info("Importing products from Magento...")
        reconciler = ProductReconciler(self.engine, self.client, context)
        configurable = await self.client.fetch_products(CONFIGURABLE, since)
        summary.configurable = await self._run_phase(configurable, reconciler.sync)
        self._progress(66)

        simple = await self.client.fetch_products(SIMPLE, since)
        summary.simple = await self._run_phase(simple, reconciler.sync)
        if configurable or simple:
            logger.info("%s products have been imported or updated successfully.", len(configurable) + len(simple))
        else:
            logger.info("No products have been imported or updated.")
        self._progress(100)

        summary.watermark = watermark_now()
        with self.engine.begin() as conn:
            write_watermark(CatalogStore(conn), context.store_id, summary.watermark)
        return summary

    async def _sync_category(self, category: SourceCategory) -> Outcome:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, CategoryReconciler(self.engine).sync, category)

    async def _run_phase(self, items: Sequence[T], handler: Callable[[T], Awaitable[Outcome]]) -> Counter:
        """Reconcile items concurrently; item failures are counted, gateway errors abort."""
        semaphore = asyncio.Semaphore(self.concurrency)

        async def worker(item: T) -> Outcome:
            async with semaphore:
                try:
                    return await handler(item)
                except GatewayError:
                    raise
                except (CatalogConflictError, SQLAlchemyError) as exc:
                    logger.error("Failed to import %s %s: %s", type(item).__name__, getattr(item, "id", "?"), exc)
                    return Outcome.FAILED
                except Exception:
                    logger.exception("Unexpected error importing %s %s", type(item).__name__, getattr(item, "id", "?"))
                    return Outcome.FAILED

        tasks = [asyncio.ensure_future(worker(item)) for item in items]
        try:
            outcomes = await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            raise
        return Counter(outcomes)

    def _progress(self, progress: int) -> None:
        if self.job_id is not None:
            jobs.update_progress(self.engine, self.job_id, progress)


async def run_import(job_id: int | None = None, *, engine: Engine | None = None, client: MagentoClient | None = None) -> ImportSummary:
    load_dotenv()
    settings = Settings.from_env() if client is None else client.settings
    engine = engine or create_engine_from_env()
    client = client or MagentoClient(settings)
    if job_id is not None:
        jobs.mark_processing(engine, job_id)
    try:
        runner = ImportRunner(engine, client, concurrency=settings.concurrency, job_id=job_id)
        summary = await runner.run()
    except Exception as exc:
        if job_id is not None:
            jobs.mark_failed(engine, job_id, str(exc))
        raise
    finally:
        await client.close()
    if job_id is not None:
        jobs.mark_completed(engine, job_id, summary.as_dict())
    return summary


def start_import(engine: Engine) -> int:
    """Record a new import job and enqueue it on the worker."""
    from magento_sync.jobs.celery_app import run_import_task

    job_id = jobs.create_job(engine)
    run_import_task.delay(job_id)
    logger.info("Enqueued Magento import job %s", job_id)
    return job_id


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="[%(asctime)s][%(levelname)s] %(name)s: %(message)s")
    asyncio.run(run_import())
