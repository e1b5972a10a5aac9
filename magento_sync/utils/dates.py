"""Datetime helpers."""

from __future__ import annotations

import pendulum

MAGENTO_DATETIME_FORMAT = "YYYY-MM-DD HH:mm:ss"


def now_utc() -> pendulum.DateTime:
    return pendulum.now("UTC")


def watermark_now() -> str:
    """Current time as the ISO-8601 string stored as the import watermark."""
    return now_utc().to_iso8601_string()


def to_magento_datetime(value: str) -> str:
    """Convert a stored watermark into the format Magento filters expect."""
    parsed = pendulum.parse(value)
    return parsed.in_timezone("UTC").format(MAGENTO_DATETIME_FORMAT)
