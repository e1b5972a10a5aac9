"""Source records parsed from Magento REST payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

CONFIGURABLE = "configurable"
SIMPLE = "simple"


def _custom_attributes(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {
        item["attribute_code"]: item.get("value")
        for item in payload.get("custom_attributes") or []
        if item.get("attribute_code")
    }


@dataclass(slots=True)
class SourceCategory:
    id: int
    name: str
    url_key: str | None = None
    position: int = 0
    updated_at: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SourceCategory":
        attributes = _custom_attributes(payload)
        return cls(
            id=payload["id"],
            name=payload.get("name") or "",
            url_key=attributes.get("url_key"),
            position=int(payload.get("position") or 0),
            updated_at=payload.get("updated_at"),
        )


@dataclass(slots=True)
class MediaEntry:
    file: str
    url: str
    types: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CategoryLink:
    category_id: int
    position: int = 0


@dataclass(slots=True)
class SourceOptionValue:
    label: str
    value: str


@dataclass(slots=True)
class SourceOption:
    id: int
    attribute_id: int | None
    label: str
    position: int = 0
    attribute_code: str | None = None
    values: list[SourceOptionValue] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SourceOption":
        return cls(
            id=payload["id"],
            attribute_id=payload.get("attribute_id"),
            label=payload.get("label") or "",
            position=int(payload.get("position") or 0),
            attribute_code=payload.get("attribute_code"),
            values=[
                SourceOptionValue(label=item.get("label") or "", value=str(item.get("value")))
                for item in payload.get("values") or []
                if "value" in item
            ],
        )


@dataclass(slots=True)
class StockRecord:
    qty: Any = 0
    backorders: int = 0
    manage_stock: bool = True

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "StockRecord":
        return cls(
            qty=payload.get("qty") or 0,
            backorders=int(payload.get("backorders") or 0),
            manage_stock=bool(payload.get("manage_stock", True)),
        )


@dataclass(slots=True)
class SourceProduct:
    id: int
    sku: str
    name: str
    type_id: str
    status: int | None = None
    price: Any = None
    weight: float | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    media: list[MediaEntry] = field(default_factory=list)
    category_links: list[CategoryLink] = field(default_factory=list)
    options: list[SourceOption] = field(default_factory=list)
    links: list[int] | None = None
    stock: StockRecord | None = None
    updated_at: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SourceProduct":
        extension = payload.get("extension_attributes") or {}
        stock = payload.get("stockData")
        links = extension.get("configurable_product_links")
        return cls(
            id=payload["id"],
            sku=payload.get("sku") or "",
            name=payload.get("name") or "",
            type_id=payload.get("type_id") or SIMPLE,
            status=payload.get("status"),
            price=payload.get("price"),
            weight=payload.get("weight"),
            attributes=_custom_attributes(payload),
            media=[
                MediaEntry(file=entry.get("file") or "", url=entry.get("url") or entry.get("file") or "", types=list(entry.get("types") or []))
                for entry in payload.get("media_gallery_entries") or []
            ],
            category_links=[
                CategoryLink(category_id=int(link["category_id"]), position=int(link.get("position") or 0))
                for link in extension.get("category_links") or []
            ],
            options=[SourceOption.from_payload(item) for item in extension.get("configurable_product_options") or []],
            links=[int(link) for link in links] if links is not None else None,
            stock=StockRecord.from_payload(stock) if stock else None,
            updated_at=payload.get("updated_at"),
        )

    @property
    def url_key(self) -> str | None:
        return self.attributes.get("url_key")

    @property
    def description(self) -> str | None:
        return self.attributes.get("description")
