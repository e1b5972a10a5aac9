"""Magento catalog importer."""
