"""Catalog records as read from and written to the catalog store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

PUBLISHED = "published"
DRAFT = "draft"

EXTERNAL_ID_KEY = "magento_id"
ATTRIBUTE_CODE_KEY = "magento_attribute_code"
VALUE_CODE_KEY = "magento_value"


@dataclass(slots=True)
class Collection:
    title: str
    handle: str
    metadata: dict[str, Any] = field(default_factory=dict)
    id: int | None = None


@dataclass(slots=True)
class OptionValue:
    value: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Option:
    title: str
    metadata: dict[str, Any] = field(default_factory=dict)
    values: list[OptionValue] = field(default_factory=list)
    id: int | None = None

    @property
    def external_id(self) -> Any:
        return self.metadata.get(EXTERNAL_ID_KEY)


@dataclass(slots=True)
class MoneyAmount:
    currency_code: str
    amount: int


@dataclass(slots=True)
class VariantOption:
    option_id: int
    value: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Variant:
    title: str
    sku: str | None
    prices: list[MoneyAmount] = field(default_factory=list)
    inventory_quantity: int = 0
    allow_backorder: bool = False
    manage_inventory: bool = True
    weight: float = 0
    options: list[VariantOption | None] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    id: int | None = None
    product_id: int | None = None

    @property
    def external_id(self) -> Any:
        return self.metadata.get(EXTERNAL_ID_KEY)


@dataclass(slots=True)
class Product:
    title: str
    handle: str | None
    description: str
    external_id: str
    status: str
    product_type: str | None = None
    thumbnail: str | None = None
    images: list[str] = field(default_factory=list)
    collection_id: int | None = None
    profile_id: int | None = None
    options: list[Option] = field(default_factory=list)
    variants: list[Variant] = field(default_factory=list)
    id: int | None = None


def same_id(left: Any, right: Any) -> bool:
    """Compare external ids that may have round-tripped through JSON as str or int."""
    if left is None or right is None:
        return False
    return str(left) == str(right)
