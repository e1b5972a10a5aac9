"""Import watermark kept on the store's metadata."""

from __future__ import annotations

import logging

from magento_sync.db.catalog import CatalogStore

logger = logging.getLogger(__name__)

WATERMARK_KEY = "source_magento_bt"


def read_watermark(catalog: CatalogStore, store_id: int) -> str | None:
    """Timestamp of the last successful import, or None before the first one."""
    value = catalog.store_metadata(store_id).get(WATERMARK_KEY)
    return str(value) if value else None


def write_watermark(catalog: CatalogStore, store_id: int, value: str) -> None:
    metadata = catalog.store_metadata(store_id)
    metadata[WATERMARK_KEY] = value
    catalog.update_store_metadata(store_id, metadata)
    logger.info("Import watermark set to %s", value)
