from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any

import psycopg
import structlog
from psycopg import errors, sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from quickbite.core.config import settings
from quickbite.core.errors import ConstraintViolationError, DuplicateItemError, StoreError
from quickbite.db.pool import get_pool
from quickbite.menu.filters import (
    LIKE_ESCAPE,
    LISTING_ORDER,
    MenuItemFilter,
    SortKey,
    escape_like,
    validate_order,
)
from quickbite.menu.models import MenuItem, MenuItemInput, MenuItemPatch
from quickbite.menu.store import MenuItemStore

logger = structlog.get_logger(__name__)

TABLE = sql.Identifier("menu_items")
COLUMNS = (
    "id",
    "name",
    "description",
    "price",
    "category",
    "dietary_tag",
    "availability",
    "created_at",
    "updated_at",
)
WRITABLE_COLUMNS = ("name", "description", "price", "category", "dietary_tag", "availability")
RETURNING = sql.SQL(", ").join(sql.Identifier(column) for column in COLUMNS)
# Text keys sort by code point, as the in-memory store does.
TEXT_SORT_FIELDS = frozenset({"name", "category"})

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS menu_items (
        id SERIAL PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        description TEXT,
        price NUMERIC(10, 2) NOT NULL,
        category TEXT NOT NULL,
        dietary_tag VARCHAR(50),
        availability BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT menu_items_name_key UNIQUE (name),
        CONSTRAINT menu_items_name_check CHECK (char_length(name) BETWEEN 1 AND 255),
        CONSTRAINT menu_items_description_check
            CHECK (description IS NULL OR char_length(description) <= 1000),
        CONSTRAINT menu_items_price_check CHECK (price > 0 AND price <= 99999.99),
        CONSTRAINT menu_items_category_check
            CHECK (category IN ('appetizer', 'main', 'dessert', 'beverage'))
    )
"""


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except errors.UniqueViolation as exc:
        logger.info("menu_item_duplicate", action=action)
        raise DuplicateItemError() from exc
    except (
        errors.CheckViolation,
        errors.NotNullViolation,
        errors.StringDataRightTruncation,
        errors.NumericValueOutOfRange,
    ) as exc:
        detail = exc.diag.message_primary or str(exc)
        logger.warning("menu_item_rejected_by_store", action=action, error=detail)
        raise ConstraintViolationError(detail) from exc
    except psycopg.Error as exc:
        logger.error("menu_store_failed", action=action, error=str(exc))
        raise StoreError(action, str(exc)) from exc


def _to_param(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _row_to_item(row: dict[str, Any]) -> MenuItem:
    return MenuItem(**{column: row[column] for column in COLUMNS})


def _order_term(key: SortKey) -> sql.Composable:
    column: sql.Composable = sql.Identifier(key.field)
    if key.field in TEXT_SORT_FIELDS:
        column = column + sql.SQL(' COLLATE "C"')
    return column + sql.SQL(" " + key.direction.value.upper())


class PostgresMenuItemStore(MenuItemStore):
    def __init__(
        self,
        dsn: str | None = None,
        pool: ConnectionPool | None = None,
    ) -> None:
        self._pool: ConnectionPool | None = pool
        self._owns_pool = False
        if dsn is not None and pool is None:
            self._pool = ConnectionPool(
                conninfo=dsn,
                min_size=1,
                max_size=1,
                kwargs={"row_factory": dict_row},
                check=ConnectionPool.check_connection,
                open=True,
            )
            self._owns_pool = True
        self._tables_ensured = False
        self._tables_lock = threading.Lock()

    @property
    def pool(self) -> ConnectionPool:
        if self._pool is None:
            self._pool = get_pool()
        if settings.db_auto_create and not self._tables_ensured:
            with self._tables_lock:
                if not self._tables_ensured:
                    self._ensure_tables()
                    self._tables_ensured = True
        return self._pool

    def create(self, item: MenuItemInput) -> MenuItem:
        values = item.model_dump()
        query = sql.SQL("INSERT INTO {table} ({columns}) VALUES ({values}) RETURNING {returning}").format(
            table=TABLE,
            columns=sql.SQL(", ").join(map(sql.Identifier, WRITABLE_COLUMNS)),
            values=sql.SQL(", ").join(map(sql.Placeholder, WRITABLE_COLUMNS)),
            returning=RETURNING,
        )
        params = {column: _to_param(values[column]) for column in WRITABLE_COLUMNS}
        with _translate_errors("create menu item"):
            row = self._fetch_one(query, params)
        record = _row_to_item(row)
        logger.info("menu_item_stored", item_id=record.id, backend="postgres")
        return record

    def get(self, item_id: int) -> MenuItem | None:
        query = sql.SQL("SELECT {returning} FROM {table} WHERE id = %(item_id)s").format(
            returning=RETURNING, table=TABLE
        )
        with _translate_errors("retrieve menu item"):
            row = self._fetch_one(query, {"item_id": item_id})
        return _row_to_item(row) if row else None

    def find_all(
        self,
        filters: MenuItemFilter | None = None,
        order: tuple[SortKey, ...] = LISTING_ORDER,
    ) -> list[MenuItem]:
        filters = filters or MenuItemFilter()
        if filters.matches_nothing:
            return []
        conditions: list[sql.Composable] = []
        params: dict[str, Any] = {}
        if filters.category is not None:
            conditions.append(sql.SQL("category = %(category)s"))
            params["category"] = filters.category
        if filters.dietary_tag is not None:
            conditions.append(sql.SQL("dietary_tag = %(dietary_tag)s"))
            params["dietary_tag"] = filters.dietary_tag
        if filters.name_contains is not None:
            conditions.append(
                sql.SQL("name ILIKE %(name_pattern)s ESCAPE {escape}").format(
                    escape=sql.Literal(LIKE_ESCAPE)
                )
            )
            params["name_pattern"] = f"%{escape_like(filters.name_contains)}%"

        where = (
            sql.SQL(" WHERE ") + sql.SQL(" AND ").join(conditions)
            if conditions
            else sql.SQL("")
        )
        order_by = sql.SQL(", ").join(_order_term(key) for key in validate_order(order))
        query = sql.SQL("SELECT {returning} FROM {table}{where} ORDER BY {order_by}").format(
            returning=RETURNING, table=TABLE, where=where, order_by=order_by
        )
        with _translate_errors("retrieve menu items"):
            with self.pool.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(query, params)
                    rows = cur.fetchall()
        return [_row_to_item(row) for row in rows]

    def update(self, item_id: int, patch: MenuItemPatch) -> MenuItem | None:
        changes = patch.changes()
        if not changes:
            return self.get(item_id)

        set_clause = sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder(column))
            for column in changes
        )
        query = sql.SQL(
            "UPDATE {table} SET {set_clause}, updated_at = NOW() "
            "WHERE id = %(item_id)s RETURNING {returning}"
        ).format(table=TABLE, set_clause=set_clause, returning=RETURNING)
        params = {column: _to_param(value) for column, value in changes.items()}
        params["item_id"] = item_id
        with _translate_errors("update menu item"):
            row = self._fetch_one(query, params)
        return _row_to_item(row) if row else None

    def delete(self, item_id: int) -> bool:
        query = sql.SQL("DELETE FROM {table} WHERE id = %(item_id)s").format(table=TABLE)
        with _translate_errors("delete menu item"):
            with self.pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, {"item_id": item_id})
                    deleted = cur.rowcount > 0
                conn.commit()
        return deleted

    def ping(self) -> None:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()

    def close(self) -> None:
        if self._owns_pool and self._pool is not None:
            self._pool.close()
            self._pool = None

    def _fetch_one(self, query: sql.Composable, params: dict[str, Any]) -> dict[str, Any] | None:
        with self.pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                row = cur.fetchone()
            conn.commit()
        return row

    def _ensure_tables(self) -> None:
        try:
            with self._pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(_SCHEMA)
                    cur.execute(
                        "CREATE INDEX IF NOT EXISTS idx_menu_items_category "
                        "ON menu_items (category)"
                    )
                conn.commit()
        except errors.UniqueViolation:
            # Another worker created the table concurrently.
            logger.info("menu_store_setup_raced")
        except psycopg.Error as exc:
            logger.error("menu_store_setup_failed", error=str(exc))
            raise StoreError("prepare menu item storage", str(exc)) from exc
