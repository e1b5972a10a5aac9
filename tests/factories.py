"""Builders for Magento REST payloads used across tests."""

from magento_sync.ingest.models import SourceCategory, SourceProduct

MEDIA_PREFIX = "https://shop.test/media/catalog/product"


def category_payload(id, name, url_key=None, position=1):
    attributes = [{"attribute_code": "url_key", "value": url_key}] if url_key else []
    return {"id": id, "name": name, "position": position, "custom_attributes": attributes}


def media(file, *types, prefix=MEDIA_PREFIX):
    entry = {"file": file, "types": list(types)}
    if prefix is not None:
        entry["url"] = f"{prefix}{file}"
    return entry


def option_payload(id, attribute_id, label, values=(), attribute_code=None):
    payload = {
        "id": id,
        "attribute_id": attribute_id,
        "label": label,
        "values": [{"label": value_label, "value": code} for value_label, code in values],
    }
    if attribute_code:
        payload["attribute_code"] = attribute_code
    return payload


def product_payload(
    id,
    sku,
    name,
    type_id="simple",
    price=10,
    status=1,
    url_key=None,
    description=None,
    media_entries=(),
    category_links=(),
    options=(),
    links=None,
    attributes=None,
    stock=None,
    weight=None,
):
    custom = []
    if url_key:
        custom.append({"attribute_code": "url_key", "value": url_key})
    if description is not None:
        custom.append({"attribute_code": "description", "value": description})
    for code, value in (attributes or {}).items():
        custom.append({"attribute_code": code, "value": value})
    extension = {}
    if category_links:
        extension["category_links"] = [
            {"category_id": str(category_id), "position": position} for category_id, position in category_links
        ]
    if options:
        extension["configurable_product_options"] = list(options)
    if links is not None:
        extension["configurable_product_links"] = list(links)
    payload = {
        "id": id,
        "sku": sku,
        "name": name,
        "type_id": type_id,
        "status": status,
        "price": price,
        "custom_attributes": custom,
        "media_gallery_entries": list(media_entries),
        "extension_attributes": extension,
    }
    if weight is not None:
        payload["weight"] = weight
    if stock is not None:
        payload["stockData"] = stock
    return payload


def stock(qty=5, backorders=0, manage_stock=True):
    return {"qty": qty, "backorders": backorders, "manage_stock": manage_stock}


def source_category(*args, **kwargs):
    return SourceCategory.from_payload(category_payload(*args, **kwargs))


def source_product(*args, **kwargs):
    return SourceProduct.from_payload(product_payload(*args, **kwargs))


COLOR_VALUES = [("Red", "49"), ("Blue", "50"), ("Green", "51")]


def color_option(values=COLOR_VALUES):
    return option_payload(7, 93, "Color", values, attribute_code="color")


def tee(links=(101,), values=COLOR_VALUES, **kwargs):
    """A configurable tee with a Color option."""
    kwargs.setdefault("media_entries", [media("/t/e/tee.jpg", "image", "thumbnail"), media("/t/e/tee-back.jpg")])
    kwargs.setdefault("options", [color_option(values)])
    return source_product(
        100,
        "TEE",
        "Tee",
        type_id="configurable",
        url_key="tee",
        description="<p>Soft <b>cotton</b></p>",
        links=list(links),
        **kwargs,
    )


def tee_variant(id=101, sku="TEE-RED", color="49", price=19.999, media_entries=(), attributes=None, **kwargs):
    return source_product(
        id,
        sku,
        f"Tee {sku}",
        price=price,
        attributes={"color": color, **(attributes or {})},
        stock=kwargs.pop("stock", stock()),
        media_entries=media_entries,
        **kwargs,
    )
