"""Create the catalog schema and seed the store the importer writes into."""

from __future__ import annotations

import os

from dotenv import load_dotenv

from magento_sync.db.migrate import run_migrations, seed_store
from magento_sync.db.session import create_engine_from_env


def main() -> None:
    load_dotenv()
    engine = create_engine_from_env()
    run_migrations(engine)
    currencies = [code.strip().lower() for code in os.environ.get("STORE_CURRENCIES", "").split(",") if code.strip()]
    store_id = seed_store(
        engine,
        name=os.environ.get("STORE_NAME", "Default Store"),
        default_currency=os.environ.get("STORE_DEFAULT_CURRENCY", "usd").lower(),
        currencies=currencies,
    )
    print(f"Seed complete (store {store_id})")


if __name__ == "__main__":
    main()
