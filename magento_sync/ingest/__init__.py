"""Magento ingestion."""

from magento_sync.ingest.magento import Filter, MagentoClient
from magento_sync.ingest.models import CONFIGURABLE, SIMPLE, SourceCategory, SourceProduct

__all__ = ["CONFIGURABLE", "SIMPLE", "Filter", "MagentoClient", "SourceCategory", "SourceProduct"]
