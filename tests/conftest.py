import pytest
from sqlalchemy import create_engine, event, select

from magento_sync.config import Settings
from magento_sync.db.catalog import CatalogStore
from magento_sync.db.migrate import run_migrations, seed_store
from magento_sync.db.schema import stores

WRITE_METHODS = (
    "create_collection",
    "update_collection",
    "create_product",
    "update_product",
    "add_option",
    "update_option",
    "delete_option",
    "create_variant",
    "update_variant",
    "delete_variant",
)


@pytest.fixture()
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'catalog.db'}",
        future=True,
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    # every transaction takes the write lock on BEGIN; concurrent item transactions queue on it
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    run_migrations(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def seeded_engine(engine):
    seed_store(engine, name="Default Store", default_currency="usd")
    return engine


@pytest.fixture()
def context(seeded_engine):
    with seeded_engine.connect() as conn:
        return CatalogStore(conn).store_context()


@pytest.fixture()
def store_metadata(seeded_engine):
    def load():
        with seeded_engine.connect() as conn:
            return conn.execute(select(stores.c.metadata)).scalar_one()

    return load


@pytest.fixture()
def writes(monkeypatch):
    """Names of catalog write methods called, in order."""
    calls = []
    for name in WRITE_METHODS:
        original = getattr(CatalogStore, name)

        def wrapper(self, *args, _name=name, _original=original, **kwargs):
            calls.append(_name)
            return _original(self, *args, **kwargs)

        monkeypatch.setattr(CatalogStore, name, wrapper)
    return calls


@pytest.fixture()
def settings():
    return Settings(
        magento_url="https://shop.test",
        consumer_key="ck",
        consumer_secret="cs",
        access_token="at",
        access_token_secret="ats",
        page_size=2,
        rate=0,
        concurrency=1,
    )
