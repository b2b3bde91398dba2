from __future__ import annotations

import os
from collections.abc import Iterator
from typing import Any

import psycopg
import pytest
from fastapi.testclient import TestClient

from quickbite import main
from quickbite.api.menu_items import get_store
from quickbite.core.config import settings
from quickbite.menu import (
    InMemoryMenuItemStore,
    MenuItem,
    MenuItemInput,
    MenuItemStore,
    PostgresMenuItemStore,
)


def _normalize_dsn(dsn: str) -> str:
    return dsn.replace("postgresql+psycopg", "postgresql")


def make_input(**overrides: Any) -> MenuItemInput:
    fields: dict[str, Any] = {
        "name": "Margherita Pizza",
        "description": "Classic pizza with tomato sauce, mozzarella, and fresh basil",
        "price": "12.99",
        "category": "main",
        "dietaryTag": "vegetarian",
    }
    fields.update(overrides)
    return MenuItemInput.model_validate(fields)


def add_item(store: MenuItemStore, **overrides: Any) -> MenuItem:
    return store.create(make_input(**overrides))


@pytest.fixture()
def store() -> InMemoryMenuItemStore:
    return InMemoryMenuItemStore()


@pytest.fixture()
def client(store: MenuItemStore) -> Iterator[TestClient]:
    main.app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()


@pytest.fixture(scope="session")
def postgres_dsn() -> str:
    dsn = _normalize_dsn(os.getenv("POSTGRES_DSN", settings.postgres_dsn))
    try:
        with psycopg.connect(dsn, connect_timeout=2):
            pass
    except psycopg.OperationalError:
        pytest.skip("Postgres is not reachable")
    settings.postgres_dsn = dsn
    return dsn


def _truncate_menu_items(dsn: str) -> None:
    with psycopg.connect(dsn) as conn:
        conn.execute("TRUNCATE TABLE menu_items RESTART IDENTITY")
        conn.commit()


@pytest.fixture()
def pg_store(postgres_dsn: str) -> Iterator[PostgresMenuItemStore]:
    pg = PostgresMenuItemStore(postgres_dsn)
    pg.ping()
    _truncate_menu_items(postgres_dsn)
    yield pg
    _truncate_menu_items(postgres_dsn)
    pg.close()
