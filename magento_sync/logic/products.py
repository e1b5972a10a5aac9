"""Product reconciliation.

Each source product is resolved to one of three identities and handed to the
matching reconciliation function:

* ``NewProduct``: nothing in the catalog carries its external id or SKU.
* ``ExistingProduct``: a product with the same external id exists.
* ``OrphanVariant``: no product matches, but a variant with the same SKU
  does. This is how simple products that belong to a configurable product
  come back through the simple product phase.

All functions work on a ``CatalogStore`` bound to one transaction, so a
failure anywhere rolls back every write made for that product.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence, Union

from sqlalchemy.engine import Engine

from magento_sync.db.catalog import CatalogStore, StoreContext
from magento_sync.db.models import Option, Product, Variant, same_id
from magento_sync.errors import CatalogConflictError
from magento_sync.ingest.magento import MagentoClient
from magento_sync.ingest.models import CategoryLink, SourceProduct
from magento_sync.logic.normalize import (
    PRODUCT_FIELDS,
    VARIANT_FIELDS,
    changed_fields,
    normalize_option,
    normalize_product,
    normalize_variant,
    unique,
)
from magento_sync.logic.outcome import Outcome

logger = logging.getLogger(__name__)

ORPHAN_VARIANT_FIELDS = tuple(field for field in VARIANT_FIELDS if field != "options")


@dataclass(slots=True)
class NewProduct:
    pass


@dataclass(slots=True)
class ExistingProduct:
    product: Product


@dataclass(slots=True)
class OrphanVariant:
    variant: Variant


Identity = Union[NewProduct, ExistingProduct, OrphanVariant]


def resolve_identity(catalog: CatalogStore, source: SourceProduct) -> Identity:
    product = catalog.product_by_external_id(str(source.id))
    if product is not None:
        return ExistingProduct(product)
    variant = catalog.variant_by_sku(source.sku)
    if variant is not None:
        return OrphanVariant(variant)
    return NewProduct()


def assign_collection(catalog: CatalogStore, links: Sequence[CategoryLink]) -> int | None:
    """Collection for the highest positioned category that has one.

    Links are stable-sorted by ascending position and walked from the end, so
    among links sharing the highest position the one listed last wins.
    """
    collections = catalog.collections_by_external_id()
    for link in reversed(sorted(links, key=lambda item: item.position)):
        collection = collections.get(str(link.category_id))
        if collection is not None:
            return collection.id
    return None


def create_product(
    catalog: CatalogStore,
    context: StoreContext,
    source: SourceProduct,
    variants: Sequence[SourceProduct] = (),
) -> Outcome:
    product = normalize_product(source)
    product.profile_id = context.shipping_profile_id
    if source.category_links:
        product.collection_id = assign_collection(catalog, source.category_links)
    product.options = [normalize_option(option) for option in source.options]

    images = list(product.images)
    product.images = []
    product_id = catalog.create_product(product)

    if source.links is not None:
        stored = catalog.list_options(product_id)
        for option in product.options:
            match = next((o for o in stored if same_id(o.external_id, option.external_id)), None)
            option.id = match.id if match else None
        for variant in variants:
            catalog.create_variant(product_id, normalize_variant(variant, product.options, context.currencies))
            images.extend(entry.url for entry in variant.media)
    else:
        catalog.create_variant(product_id, normalize_variant(source, [], context.currencies))

    images = unique(images)
    if images:
        catalog.update_product(product_id, {"images": images})
    logger.info("Created product %s (%s) with %s image(s)", source.sku, source.id, len(images))
    return Outcome.CREATED


def _sync_options(catalog: CatalogStore, existing: Product, incoming: Sequence[Option]) -> bool:
    """Create, update and delete options by external id. Values are left alone."""
    changed = False
    for option in incoming:
        current = next((o for o in existing.options if same_id(o.external_id, option.external_id)), None)
        if current is None:
            catalog.add_option(existing.id, Option(title=option.title, metadata=option.metadata))
            changed = True
            continue
        changes = {}
        if option.title != current.title:
            changes["title"] = option.title
        metadata = {**current.metadata, **option.metadata}
        if metadata != current.metadata:
            changes["metadata"] = metadata
        if changes:
            catalog.update_option(current.id, changes)
            changed = True
    for current in existing.options:
        if not any(same_id(current.external_id, option.external_id) for option in incoming):
            catalog.delete_option(current.id)
            changed = True
    return changed


def _upsert_variant(catalog: CatalogStore, product_id: int, data: Variant, current: Variant | None) -> bool:
    if current is None:
        catalog.create_variant(product_id, data)
        return True
    changes = changed_fields(data, current, VARIANT_FIELDS)
    if changes:
        catalog.update_variant(current.id, changes)
        return True
    return False


def update_product(
    catalog: CatalogStore,
    context: StoreContext,
    source: SourceProduct,
    existing: Product,
    variants: Sequence[SourceProduct] = (),
) -> Outcome:
    product = normalize_product(source)
    if source.category_links:
        product.collection_id = assign_collection(catalog, source.category_links)
    else:
        product.collection_id = existing.collection_id
    changed = False

    options = existing.options
    incoming = [normalize_option(option) for option in source.options]
    if incoming:
        if _sync_options(catalog, existing, incoming):
            changed = True
            options = catalog.list_options(existing.id)

    images = [*existing.images, *product.images]
    if source.links is not None:
        for option in options:
            match = next((o for o in incoming if same_id(o.external_id, option.external_id)), None)
            if match is not None:
                option.values = match.values
        for variant in variants:
            data = normalize_variant(variant, options, context.currencies)
            current = next((v for v in existing.variants if same_id(v.external_id, variant.id)), None)
            changed |= _upsert_variant(catalog, existing.id, data, current)
            images.extend(entry.url for entry in variant.media)
        linked = {str(link) for link in source.links}
        for current in existing.variants:
            if str(current.external_id) not in linked:
                catalog.delete_variant(current.id)
                changed = True
    else:
        data = normalize_variant(source, [], context.currencies)
        current = existing.variants[0] if existing.variants else None
        changed |= _upsert_variant(catalog, existing.id, data, current)

    product.images = unique(images)
    changes = changed_fields(product, existing, (*PRODUCT_FIELDS, "images"))
    if changes:
        catalog.update_product(existing.id, changes)
        changed = True
    return Outcome.UPDATED if changed else Outcome.NOOP


def update_orphan_variant(
    catalog: CatalogStore,
    context: StoreContext,
    source: SourceProduct,
    existing: Variant,
) -> Outcome:
    if existing.external_id is not None and not same_id(existing.external_id, source.id):
        raise CatalogConflictError(
            f"SKU {source.sku} of product {source.id} is already used by variant {existing.id} "
            f"imported from product {existing.external_id}"
        )
    logger.warning("Product %s matched variant %s by SKU %s; updating it as a variant", source.id, existing.id, source.sku)
    data = normalize_variant(source, [], context.currencies)
    changes = changed_fields(data, existing, ORPHAN_VARIANT_FIELDS)
    if not changes:
        return Outcome.NOOP
    catalog.update_variant(existing.id, changes)
    return Outcome.UPDATED


def reconcile_product(
    catalog: CatalogStore,
    context: StoreContext,
    source: SourceProduct,
    variants: Sequence[SourceProduct] = (),
) -> Outcome:
    identity = resolve_identity(catalog, source)
    if isinstance(identity, ExistingProduct):
        return update_product(catalog, context, source, identity.product, variants)
    if isinstance(identity, OrphanVariant):
        return update_orphan_variant(catalog, context, source, identity.variant)
    return create_product(catalog, context, source, variants)


class ProductReconciler:
    def __init__(self, engine: Engine, client: MagentoClient, context: StoreContext) -> None:
        self.engine = engine
        self.client = client
        self.context = context

    async def sync(self, source: SourceProduct) -> Outcome:
        variants = await self.client.fetch_variants_by_ids(source.links) if source.links else []
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._reconcile, source, variants)

    def _reconcile(self, source: SourceProduct, variants: list[SourceProduct]) -> Outcome:
        with self.engine.begin() as conn:
            outcome = reconcile_product(CatalogStore(conn), self.context, source, variants)
        logger.debug("Product %s (%s): %s", source.id, source.sku, outcome.value)
        return outcome
