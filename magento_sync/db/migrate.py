"""Create the catalog tables and the store they belong to."""

from __future__ import annotations

import sys
from typing import Sequence

from dotenv import load_dotenv
from sqlalchemy import insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from magento_sync.db.schema import metadata, shipping_profiles, store_currencies, stores
from magento_sync.db.session import create_engine_from_env


def run_migrations(engine: Engine) -> None:
    metadata.create_all(engine)


def seed_store(engine: Engine, name: str, default_currency: str, currencies: Sequence[str] = ()) -> int:
    """Create the store, its currencies and a default shipping profile if missing."""
    with engine.begin() as conn:
        store_id = conn.execute(select(stores.c.id).order_by(stores.c.id)).scalars().first()
        if store_id is None:
            result = conn.execute(insert(stores).values(name=name, default_currency_code=default_currency, metadata={}))
            store_id = result.inserted_primary_key[0]
        existing = set(
            conn.execute(select(store_currencies.c.currency_code).where(store_currencies.c.store_id == store_id)).scalars()
        )
        for code in dict.fromkeys([default_currency, *currencies]):
            if code not in existing:
                conn.execute(insert(store_currencies).values(store_id=store_id, currency_code=code))
        profile = conn.execute(select(shipping_profiles.c.id).where(shipping_profiles.c.type == "default")).first()
        if profile is None:
            conn.execute(insert(shipping_profiles).values(name="Default Shipping Profile", type="default"))
    return store_id


def main() -> None:
    load_dotenv()
    engine = create_engine_from_env()
    try:
        run_migrations(engine)
    except SQLAlchemyError as exc:
        print(f"Migration failed: {exc}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
