"""Catalog tables."""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    func,
)

metadata = MetaData()

stores = Table(
    "stores",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("default_currency_code", Text, nullable=False),
    Column("metadata", JSON, nullable=False, default=dict),
)

store_currencies = Table(
    "store_currencies",
    metadata,
    Column("store_id", Integer, ForeignKey("stores.id", ondelete="CASCADE"), primary_key=True),
    Column("currency_code", Text, primary_key=True),
)

shipping_profiles = Table(
    "shipping_profiles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("type", Text, nullable=False, default="custom"),
)

collections = Table(
    "collections",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", Text, nullable=False),
    Column("handle", Text, nullable=False, unique=True),
    Column("metadata", JSON, nullable=False, default=dict),
)

products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", Text, nullable=False),
    Column("handle", Text, unique=True),
    Column("description", Text, nullable=False, default=""),
    Column("external_id", Text, unique=True),
    Column("status", Text, nullable=False),
    Column("product_type", Text),
    Column("thumbnail", Text),
    Column("collection_id", Integer, ForeignKey("collections.id")),
    Column("profile_id", Integer, ForeignKey("shipping_profiles.id")),
)

product_images = Table(
    "product_images",
    metadata,
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("rank", Integer, primary_key=True),
    Column("url", Text, nullable=False),
)

product_options = Table(
    "product_options",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
    Column("title", Text, nullable=False),
    Column("rank", Integer, nullable=False, default=0),
    Column("metadata", JSON, nullable=False, default=dict),
)

product_variants = Table(
    "product_variants",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
    Column("title", Text, nullable=False),
    Column("sku", Text, unique=True),
    Column("inventory_quantity", Integer, nullable=False, default=0),
    Column("allow_backorder", Boolean, nullable=False, default=False),
    Column("manage_inventory", Boolean, nullable=False, default=True),
    Column("weight", Float, nullable=False, default=0),
    Column("metadata", JSON, nullable=False, default=dict),
)

money_amounts = Table(
    "money_amounts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("variant_id", Integer, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False),
    Column("currency_code", Text, nullable=False),
    Column("amount", Integer, nullable=False),
    UniqueConstraint("variant_id", "currency_code"),
)

product_option_values = Table(
    "product_option_values",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("option_id", Integer, ForeignKey("product_options.id", ondelete="CASCADE"), nullable=False),
    Column("variant_id", Integer, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False),
    Column("value", Text, nullable=False),
    Column("metadata", JSON, nullable=False, default=dict),
    UniqueConstraint("option_id", "variant_id"),
)

import_jobs = Table(
    "import_jobs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("status", Text, nullable=False, default="created"),
    Column("progress", Integer, nullable=False, default=0),
    Column("result", JSON),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()),
)
