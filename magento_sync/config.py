"""Runtime settings loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Settings:
    magento_url: str
    consumer_key: str
    consumer_secret: str
    access_token: str
    access_token_secret: str
    image_prefix: str | None = None
    page_size: int = 100
    rate: float = 5.0
    concurrency: int = 4

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            magento_url=os.environ["MAGENTO_URL"].rstrip("/"),
            consumer_key=os.environ["MAGENTO_CONSUMER_KEY"],
            consumer_secret=os.environ["MAGENTO_CONSUMER_SECRET"],
            access_token=os.environ["MAGENTO_ACCESS_TOKEN"],
            access_token_secret=os.environ["MAGENTO_ACCESS_TOKEN_SECRET"],
            image_prefix=os.environ.get("MAGENTO_IMAGE_PREFIX") or None,
            page_size=int(os.environ.get("MAGENTO_PAGE_SIZE", 100)),
            rate=float(os.environ.get("MAGENTO_RATE", 5.0)),
            concurrency=int(os.environ.get("IMPORT_CONCURRENCY", 4)),
        )

    @property
    def api_base_url(self) -> str:
        return f"{self.magento_url}/rest/default/V1"
