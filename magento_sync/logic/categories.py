"""Category -> collection reconciliation."""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine

from magento_sync.db.catalog import CatalogStore
from magento_sync.ingest.models import SourceCategory
from magento_sync.logic.normalize import changed_fields, normalize_category
from magento_sync.logic.outcome import Outcome

logger = logging.getLogger(__name__)

# metadata is written once on creation and never diffed
COLLECTION_FIELDS = ("title", "handle")


def reconcile_category(catalog: CatalogStore, category: SourceCategory) -> Outcome:
    data = normalize_category(category)
    existing = catalog.collection_by_handle(data.handle)
    if existing is None:
        catalog.create_collection(data)
        return Outcome.CREATED
    changes = changed_fields(data, existing, COLLECTION_FIELDS)
    if not changes:
        return Outcome.NOOP
    catalog.update_collection(existing.id, changes)
    return Outcome.UPDATED


class CategoryReconciler:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def sync(self, category: SourceCategory) -> Outcome:
        with self.engine.begin() as conn:
            outcome = reconcile_category(CatalogStore(conn), category)
        logger.debug("Category %s (%s): %s", category.id, category.name, outcome.value)
        return outcome
