"""Mapping of Magento records onto catalog records.

Everything here is pure: no I/O, no store access. The reconcilers combine
these results with what the catalog already holds.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Sequence

from magento_sync.db.models import (
    ATTRIBUTE_CODE_KEY,
    DRAFT,
    EXTERNAL_ID_KEY,
    PUBLISHED,
    VALUE_CODE_KEY,
    Collection,
    MoneyAmount,
    Option,
    OptionValue,
    Product,
    Variant,
    VariantOption,
)
from magento_sync.ingest.models import SourceCategory, SourceOption, SourceProduct

ENABLED_STATUS = 1
HTML_TAG_RE = re.compile(r"<[^>]+>")
CENT = Decimal("0.01")

PRODUCT_FIELDS = ("title", "handle", "description", "status", "product_type", "thumbnail", "collection_id")
VARIANT_FIELDS = (
    "title",
    "sku",
    "prices",
    "inventory_quantity",
    "allow_backorder",
    "manage_inventory",
    "weight",
    "options",
)


def strip_html(text: Any) -> str:
    if text is None or text == "":
        return ""
    return HTML_TAG_RE.sub("", str(text))


def parse_price(value: Any) -> int:
    """Price in minor units, rounded half up at two decimals."""
    if value in (None, ""):
        return 0
    try:
        amount = Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return 0
    return int(amount * 100)


def parse_quantity(value: Any) -> int:
    """Whole stock units; Magento may send quantities as decimal strings."""
    if value in (None, ""):
        return 0
    return int(Decimal(str(value)))


def unique(items: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for item in items:
        if item:
            seen.setdefault(item, None)
    return list(seen)


def normalize_category(category: SourceCategory) -> Collection:
    return Collection(
        title=category.name,
        handle=category.url_key or "",
        metadata={EXTERNAL_ID_KEY: category.id},
    )


def normalize_product(product: SourceProduct) -> Product:
    thumbnail = next((entry.url for entry in product.media if "thumbnail" in entry.types), None)
    return Product(
        title=product.name,
        handle=product.url_key,
        description=strip_html(product.description),
        external_id=str(product.id),
        status=PUBLISHED if str(product.status) == str(ENABLED_STATUS) else DRAFT,
        product_type=product.type_id,
        thumbnail=thumbnail,
        images=unique(entry.url for entry in product.media),
    )


def normalize_option(option: SourceOption) -> Option:
    metadata: dict[str, Any] = {EXTERNAL_ID_KEY: option.id}
    if option.attribute_code:
        metadata[ATTRIBUTE_CODE_KEY] = option.attribute_code
    return Option(
        title=option.label,
        metadata=metadata,
        values=[OptionValue(value=value.label, metadata={VALUE_CODE_KEY: value.value}) for value in option.values],
    )


def normalize_variant(
    variant: SourceProduct,
    options: Sequence[Option] = (),
    currencies: Sequence[str] = (),
) -> Variant:
    stock = variant.stock
    amount = parse_price(variant.price)
    return Variant(
        title=variant.name,
        sku=variant.sku,
        prices=[MoneyAmount(currency_code=code, amount=amount) for code in currencies],
        inventory_quantity=parse_quantity(stock.qty) if stock else 0,
        allow_backorder=stock.backorders > 0 if stock else False,
        manage_inventory=stock.manage_stock if stock else True,
        weight=float(variant.weight or 0),
        options=[resolve_option_value(variant, option) for option in options],
        metadata={EXTERNAL_ID_KEY: variant.id},
    )


def resolve_option_value(variant: SourceProduct, option: Option) -> VariantOption | None:
    """Which of ``option``'s values the variant carries, if any."""
    code = (option.metadata.get(ATTRIBUTE_CODE_KEY) or option.title or "").lower()
    raw = next((value for key, value in variant.attributes.items() if key.lower() == code), None)
    if raw is None or option.id is None:
        return None
    match = next((value for value in option.values if str(value.metadata.get(VALUE_CODE_KEY)) == str(raw)), None)
    if match is None:
        return None
    return VariantOption(option_id=option.id, value=match.value, metadata=dict(match.metadata))


def comparable(field: str, value: Any) -> Any:
    if field == "prices":
        return sorted((price.currency_code, price.amount) for price in value)
    if field == "options":
        return sorted((option.option_id, option.value) for option in value if option is not None)
    return value


def changed_fields(new: Any, existing: Any, fields: Iterable[str]) -> dict[str, Any]:
    """Fields of ``new`` whose value differs from ``existing``."""
    return {
        field: getattr(new, field)
        for field in fields
        if comparable(field, getattr(new, field)) != comparable(field, getattr(existing, field))
    }
