import importlib
import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from alembic import command
from alembic.config import Config

from app.shopcart.repos.carts import InMemoryCartStore
from app.shopcart.services.cart import Cart
from app.shopcart.services.cart_state import CartDefaults
from app.shopcart.services.catalog import ModelRegistry
from tests.cart_helpers import BuyableProduct, RecordingSink


def _setup_app(database_url: str, backend: str = "database"):
    os.environ["DATABASE_URL"] = database_url
    os.environ["CART_STORE_BACKEND"] = backend

    import app.shopcart.core.config as config
    import app.shopcart.db.session as session
    import app.shopcart.core.deps as deps
    import app.shopcart.routers.health as health
    import app.shopcart.routers.carts as carts
    import app.shopcart.api as api
    import app.main as main

    for module in (config, session, deps, health, carts, api, main):
        importlib.reload(module)

    return main.create_app(), session


def _run_migrations(database_url: str):
    os.environ["DATABASE_URL"] = database_url
    config = Config("alembic.ini")
    config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(config, "head")


@pytest.fixture()
def client(tmp_path: Path):
    database_url = f"sqlite+pysqlite:///{tmp_path / 'test.db'}"

    _run_migrations(database_url)
    app, session = _setup_app(database_url)

    with TestClient(app) as client:
        yield client

    session.engine.dispose()


@pytest.fixture()
def memory_client(tmp_path: Path):
    database_url = f"sqlite+pysqlite:///{tmp_path / 'memory.db'}"

    _run_migrations(database_url)
    app, session = _setup_app(database_url, backend="memory")

    with TestClient(app) as client:
        yield client

    session.engine.dispose()


@pytest.fixture()
def db_session(client):
    from app.shopcart.db.session import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def registry():
    registry = ModelRegistry()
    registry.register(
        "product",
        BuyableProduct,
        loader=lambda key: BuyableProduct(key, "Loaded product", 1000),
    )
    return registry


@pytest.fixture()
def store():
    return InMemoryCartStore()


@pytest.fixture()
def sink():
    return RecordingSink()


@pytest.fixture()
def cart(store, sink, registry):
    return Cart(store, sink, registry=registry, defaults=CartDefaults(tax_rate=21))
