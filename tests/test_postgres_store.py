from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock, patch

import psycopg
import pytest
from psycopg import errors
from psycopg.rows import dict_row

from conftest import add_item
from quickbite.core.config import settings
from quickbite.core.errors import DuplicateItemError, StoreError
from quickbite.menu import (
    SEARCH_ORDER,
    Category,
    MenuItemPatch,
    PostgresMenuItemStore,
    build_listing_filter,
    build_search_filter,
)


def test_create_then_get_round_trip(pg_store) -> None:
    created = add_item(pg_store)
    fetched = pg_store.get(created.id)

    assert created.id > 0
    assert fetched is not None
    assert fetched.name == "Margherita Pizza"
    assert fetched.price == Decimal("12.99")
    assert fetched.category is Category.main
    assert fetched.dietary_tag == "vegetarian"
    assert fetched.availability is True
    assert fetched.created_at is not None


def test_rows_persisted_with_snake_case_columns(pg_store, postgres_dsn: str) -> None:
    created = add_item(pg_store)

    with psycopg.connect(postgres_dsn, row_factory=dict_row) as conn:
        row = conn.execute("SELECT * FROM menu_items WHERE id = %s", (created.id,)).fetchone()

    assert row["category"] == "main"
    assert row["dietary_tag"] == "vegetarian"


def test_duplicate_name_rejected(pg_store) -> None:
    add_item(pg_store)

    with pytest.raises(DuplicateItemError):
        add_item(pg_store, category="dessert")


def test_find_all_orders_and_filters(pg_store) -> None:
    add_item(pg_store, name="Grilled Chicken", dietaryTag=None)
    add_item(pg_store, name="Caesar Salad", category="appetizer")
    add_item(pg_store, name="Chocolate Cake", category="dessert")

    assert [item.name for item in pg_store.find_all()] == [
        "Caesar Salad",
        "Chocolate Cake",
        "Grilled Chicken",
    ]
    assert [item.name for item in pg_store.find_all(build_listing_filter(category="main"))] == [
        "Grilled Chicken"
    ]
    vegetarian = pg_store.find_all(build_listing_filter(dietary_tag="vegetarian"))
    assert {item.name for item in vegetarian} == {"Caesar Salad", "Chocolate Cake"}
    assert pg_store.find_all(build_listing_filter(category="invalid_category")) == []


def test_search_is_case_insensitive(pg_store) -> None:
    add_item(pg_store, name="Pepperoni Pizza")
    add_item(pg_store, name="Margherita Pizza")
    add_item(pg_store, name="Caesar Salad", category="appetizer")

    items = pg_store.find_all(build_search_filter("PIZZA"), SEARCH_ORDER)

    assert [item.name for item in items] == ["Margherita Pizza", "Pepperoni Pizza"]


@pytest.mark.parametrize("term", ["' OR '1'='1", "%", "_", "\\"])
def test_search_terms_are_literal(pg_store, term: str) -> None:
    add_item(pg_store, name="Margherita Pizza")
    add_item(pg_store, name="Caesar Salad", category="appetizer")

    assert pg_store.find_all(build_search_filter(term), SEARCH_ORDER) == []


def test_search_matches_literal_percent(pg_store) -> None:
    add_item(pg_store, name="100% Orange Juice", category="beverage")
    add_item(pg_store, name="Orange Cake", category="dessert")

    items = pg_store.find_all(build_search_filter("100%"), SEARCH_ORDER)

    assert [item.name for item in items] == ["100% Orange Juice"]


def test_update_refreshes_updated_at(pg_store) -> None:
    created = add_item(pg_store)

    updated = pg_store.update(created.id, MenuItemPatch(price=Decimal("13.49"), description=None))

    assert updated is not None
    assert updated.price == Decimal("13.49")
    assert updated.description is None
    assert updated.name == created.name
    assert updated.updated_at >= created.updated_at


def test_update_without_changes_returns_current_record(pg_store) -> None:
    created = add_item(pg_store)
    assert pg_store.update(created.id, MenuItemPatch()) == pg_store.get(created.id)


def test_update_missing_item_returns_none(pg_store) -> None:
    assert pg_store.update(999999, MenuItemPatch(name="Ghost")) is None


def test_delete_then_get(pg_store) -> None:
    created = add_item(pg_store)

    assert pg_store.delete(created.id) is True
    assert pg_store.get(created.id) is None
    assert pg_store.delete(created.id) is False


def test_large_ids_are_simply_absent(pg_store) -> None:
    assert pg_store.get(999_999_999_999_999) is None
    assert pg_store.delete(999_999_999_999_999) is False


def test_connection_failures_become_store_errors() -> None:
    pool = MagicMock()
    pool.connection.side_effect = psycopg.OperationalError("connection refused")
    broken = PostgresMenuItemStore(pool=pool)
    broken._tables_ensured = True

    with pytest.raises(StoreError, match="Failed to retrieve menu items: connection refused"):
        broken.find_all()


def test_names_sort_by_code_point(pg_store) -> None:
    for name in ("banana split", "Apple Pie", "apple tart", "Zebra Cake"):
        add_item(pg_store, name=name, category="dessert")

    listed = [item.name for item in pg_store.find_all()]
    searched = [item.name for item in pg_store.find_all(build_search_filter("a"), SEARCH_ORDER)]

    assert listed == ["Apple Pie", "Zebra Cake", "apple tart", "banana split"]
    assert searched == listed


def test_nul_filter_value_matches_nothing(pg_store) -> None:
    add_item(pg_store)
    assert pg_store.find_all(build_listing_filter(dietary_tag="vegetarian\x00")) == []


def _pool_failing_setup(exc: Exception) -> MagicMock:
    pool = MagicMock()
    conn = pool.connection.return_value.__enter__.return_value
    cur = conn.cursor.return_value.__enter__.return_value
    cur.execute.side_effect = exc
    return pool


def test_table_setup_failure_is_a_store_error() -> None:
    store = PostgresMenuItemStore(pool=_pool_failing_setup(psycopg.OperationalError("disk full")))

    with (
        patch.object(settings, "db_auto_create", True),
        pytest.raises(StoreError, match="Failed to prepare menu item storage: disk full"),
    ):
        store.find_all()

    assert store._tables_ensured is False


def test_concurrent_table_setup_is_tolerated() -> None:
    pool = _pool_failing_setup(errors.UniqueViolation("duplicate key value violates unique constraint"))
    store = PostgresMenuItemStore(pool=pool)

    with patch.object(settings, "db_auto_create", True):
        assert store.pool is pool

    assert store._tables_ensured is True
