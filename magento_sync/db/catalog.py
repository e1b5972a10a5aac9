"""Catalog store access scoped to one transaction."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from magento_sync.db.models import (
    EXTERNAL_ID_KEY,
    Collection,
    MoneyAmount,
    Option,
    OptionValue,
    Product,
    Variant,
    VariantOption,
)
from magento_sync.db.schema import (
    collections,
    money_amounts,
    product_images,
    product_option_values,
    product_options,
    product_variants,
    products,
    shipping_profiles,
    store_currencies,
    stores,
)
from magento_sync.errors import CatalogConflictError

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = ("title", "handle", "description", "external_id", "status", "product_type", "thumbnail", "collection_id", "profile_id")
VARIANT_COLUMNS = ("title", "sku", "inventory_quantity", "allow_backorder", "manage_inventory", "weight", "metadata")


@dataclass(slots=True, frozen=True)
class StoreContext:
    """Store-wide values every product in a run shares."""

    store_id: int
    currencies: tuple[str, ...]
    shipping_profile_id: int | None


class CatalogStore:
    """Reads and writes catalog records on the caller's connection.

    The caller owns the transaction: every method runs on ``conn`` and
    nothing here commits or rolls back.
    """

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    # store

    def store_context(self) -> StoreContext | None:
        store = self.conn.execute(select(stores).order_by(stores.c.id).limit(1)).mappings().first()
        if store is None:
            return None
        codes = self.conn.execute(
            select(store_currencies.c.currency_code)
            .where(store_currencies.c.store_id == store["id"])
            .order_by(store_currencies.c.currency_code)
        ).scalars().all()
        currencies = list(dict.fromkeys([*codes, store["default_currency_code"]]))
        return StoreContext(
            store_id=store["id"],
            currencies=tuple(code for code in currencies if code),
            shipping_profile_id=self.default_shipping_profile_id(),
        )

    def default_shipping_profile_id(self) -> int | None:
        return self.conn.execute(
            select(shipping_profiles.c.id).where(shipping_profiles.c.type == "default").order_by(shipping_profiles.c.id)
        ).scalars().first()

    def store_metadata(self, store_id: int) -> dict[str, Any]:
        value = self.conn.execute(select(stores.c.metadata).where(stores.c.id == store_id)).scalar_one_or_none()
        return dict(value or {})

    def update_store_metadata(self, store_id: int, metadata: dict[str, Any]) -> None:
        self.conn.execute(update(stores).where(stores.c.id == store_id).values(metadata=metadata))

    # collections

    def collection_by_handle(self, handle: str) -> Collection | None:
        row = self.conn.execute(select(collections).where(collections.c.handle == handle)).mappings().first()
        return _collection(row) if row else None

    def collections_by_external_id(self) -> dict[str, Collection]:
        rows = self.conn.execute(select(collections).order_by(collections.c.id)).mappings()
        result: dict[str, Collection] = {}
        for row in rows:
            collection = _collection(row)
            external_id = collection.metadata.get(EXTERNAL_ID_KEY)
            if external_id is not None:
                result.setdefault(str(external_id), collection)
        return result

    def create_collection(self, collection: Collection) -> int:
        logger.debug("Creating collection %s", collection.handle)
        result = self.conn.execute(
            insert(collections).values(title=collection.title, handle=collection.handle, metadata=collection.metadata)
        )
        return result.inserted_primary_key[0]

    def update_collection(self, collection_id: int, changes: dict[str, Any]) -> None:
        logger.debug("Updating collection %s: %s", collection_id, sorted(changes))
        self.conn.execute(update(collections).where(collections.c.id == collection_id).values(**changes))

    # products

    def product_by_external_id(self, external_id: str) -> Product | None:
        row = self.conn.execute(select(products).where(products.c.external_id == str(external_id))).mappings().first()
        if row is None:
            return None
        product = Product(**{column: row[column] for column in PRODUCT_COLUMNS}, id=row["id"])
        product.images = list(
            self.conn.execute(
                select(product_images.c.url).where(product_images.c.product_id == product.id).order_by(product_images.c.rank)
            ).scalars()
        )
        product.options = self.list_options(product.id)
        product.variants = self.list_variants(product.id)
        return product

    def create_product(self, product: Product) -> int:
        logger.debug("Creating product %s", product.external_id)
        values = {column: getattr(product, column) for column in PRODUCT_COLUMNS}
        try:
            result = self.conn.execute(insert(products).values(**values))
        except IntegrityError as exc:
            raise CatalogConflictError(
                f"Product with handle {product.handle!r} or external id {product.external_id!r} already exists"
            ) from exc
        product_id = result.inserted_primary_key[0]
        for rank, option in enumerate(product.options):
            self.add_option(product_id, option, rank=rank)
        if product.images:
            self._replace_images(product_id, product.images)
        return product_id

    def update_product(self, product_id: int, changes: dict[str, Any]) -> None:
        logger.debug("Updating product %s: %s", product_id, sorted(changes))
        changes = dict(changes)
        images = changes.pop("images", None)
        if changes:
            try:
                self.conn.execute(update(products).where(products.c.id == product_id).values(**changes))
            except IntegrityError as exc:
                raise CatalogConflictError(f"Product {product_id} conflicts with an existing product") from exc
        if images is not None:
            self._replace_images(product_id, images)

    def _replace_images(self, product_id: int, images: Iterable[str]) -> None:
        self.conn.execute(delete(product_images).where(product_images.c.product_id == product_id))
        rows = [{"product_id": product_id, "rank": rank, "url": url} for rank, url in enumerate(images)]
        if rows:
            self.conn.execute(insert(product_images), rows)

    # options

    def list_options(self, product_id: int) -> list[Option]:
        rows = self.conn.execute(
            select(product_options)
            .where(product_options.c.product_id == product_id)
            .order_by(product_options.c.rank, product_options.c.id)
        ).mappings().all()
        values: dict[int, dict[str, OptionValue]] = defaultdict(dict)
        if rows:
            value_rows = self.conn.execute(
                select(product_option_values)
                .where(product_option_values.c.option_id.in_([row["id"] for row in rows]))
                .order_by(product_option_values.c.id)
            ).mappings()
            for value_row in value_rows:
                values[value_row["option_id"]].setdefault(
                    value_row["value"], OptionValue(value=value_row["value"], metadata=dict(value_row["metadata"] or {}))
                )
        return [
            Option(title=row["title"], metadata=dict(row["metadata"] or {}), values=list(values[row["id"]].values()), id=row["id"])
            for row in rows
        ]

    def add_option(self, product_id: int, option: Option, *, rank: int | None = None) -> int:
        logger.debug("Adding option %s to product %s", option.title, product_id)
        if rank is None:
            rank = len(self.list_options(product_id))
        result = self.conn.execute(
            insert(product_options).values(product_id=product_id, title=option.title, rank=rank, metadata=option.metadata)
        )
        return result.inserted_primary_key[0]

    def update_option(self, option_id: int, changes: dict[str, Any]) -> None:
        logger.debug("Updating option %s: %s", option_id, sorted(changes))
        self.conn.execute(update(product_options).where(product_options.c.id == option_id).values(**changes))

    def delete_option(self, option_id: int) -> None:
        logger.debug("Deleting option %s", option_id)
        self.conn.execute(delete(product_option_values).where(product_option_values.c.option_id == option_id))
        self.conn.execute(delete(product_options).where(product_options.c.id == option_id))

    # variants

    def variant_by_sku(self, sku: str) -> Variant | None:
        if not sku:
            return None
        row = self.conn.execute(select(product_variants).where(product_variants.c.sku == sku)).mappings().first()
        if row is None:
            return None
        return self._load_variants([row])[0]

    def list_variants(self, product_id: int) -> list[Variant]:
        rows = self.conn.execute(
            select(product_variants).where(product_variants.c.product_id == product_id).order_by(product_variants.c.id)
        ).mappings().all()
        return self._load_variants(rows)

    def _load_variants(self, rows) -> list[Variant]:
        if not rows:
            return []
        ids = [row["id"] for row in rows]
        prices: dict[int, list[MoneyAmount]] = defaultdict(list)
        for price in self.conn.execute(
            select(money_amounts).where(money_amounts.c.variant_id.in_(ids)).order_by(money_amounts.c.id)
        ).mappings():
            prices[price["variant_id"]].append(MoneyAmount(currency_code=price["currency_code"], amount=price["amount"]))
        options: dict[int, list[VariantOption | None]] = defaultdict(list)
        for value in self.conn.execute(
            select(product_option_values)
            .where(product_option_values.c.variant_id.in_(ids))
            .order_by(product_option_values.c.id)
        ).mappings():
            options[value["variant_id"]].append(
                VariantOption(option_id=value["option_id"], value=value["value"], metadata=dict(value["metadata"] or {}))
            )
        return [
            Variant(
                title=row["title"],
                sku=row["sku"],
                prices=prices[row["id"]],
                inventory_quantity=row["inventory_quantity"],
                allow_backorder=row["allow_backorder"],
                manage_inventory=row["manage_inventory"],
                weight=row["weight"],
                options=options[row["id"]],
                metadata=dict(row["metadata"] or {}),
                id=row["id"],
                product_id=row["product_id"],
            )
            for row in rows
        ]

    def create_variant(self, product_id: int, variant: Variant) -> int:
        logger.debug("Creating variant %s on product %s", variant.sku, product_id)
        values = {column: getattr(variant, column) for column in VARIANT_COLUMNS}
        try:
            result = self.conn.execute(insert(product_variants).values(product_id=product_id, **values))
        except IntegrityError as exc:
            raise CatalogConflictError(f"Product variant with sku: {variant.sku} already exists.") from exc
        variant_id = result.inserted_primary_key[0]
        self._replace_prices(variant_id, variant.prices)
        self._replace_option_values(variant_id, variant.options)
        return variant_id

    def update_variant(self, variant_id: int, changes: dict[str, Any]) -> None:
        logger.debug("Updating variant %s: %s", variant_id, sorted(changes))
        changes = dict(changes)
        prices = changes.pop("prices", None)
        options = changes.pop("options", None)
        if changes:
            try:
                self.conn.execute(update(product_variants).where(product_variants.c.id == variant_id).values(**changes))
            except IntegrityError as exc:
                raise CatalogConflictError(f"Product variant with sku: {changes.get('sku')} already exists.") from exc
        if prices is not None:
            self._replace_prices(variant_id, prices)
        if options is not None:
            self._replace_option_values(variant_id, options)

    def delete_variant(self, variant_id: int) -> None:
        logger.debug("Deleting variant %s", variant_id)
        self.conn.execute(delete(money_amounts).where(money_amounts.c.variant_id == variant_id))
        self.conn.execute(delete(product_option_values).where(product_option_values.c.variant_id == variant_id))
        self.conn.execute(delete(product_variants).where(product_variants.c.id == variant_id))

    def _replace_prices(self, variant_id: int, prices: Iterable[MoneyAmount]) -> None:
        self.conn.execute(delete(money_amounts).where(money_amounts.c.variant_id == variant_id))
        rows = [{"variant_id": variant_id, "currency_code": p.currency_code, "amount": p.amount} for p in prices]
        if rows:
            self.conn.execute(insert(money_amounts), rows)

    def _replace_option_values(self, variant_id: int, options: Iterable[VariantOption | None]) -> None:
        self.conn.execute(delete(product_option_values).where(product_option_values.c.variant_id == variant_id))
        rows = [
            {"option_id": o.option_id, "variant_id": variant_id, "value": o.value, "metadata": o.metadata}
            for o in options
            if o is not None
        ]
        if rows:
            self.conn.execute(insert(product_option_values), rows)


def _collection(row) -> Collection:
    return Collection(title=row["title"], handle=row["handle"], metadata=dict(row["metadata"] or {}), id=row["id"])
