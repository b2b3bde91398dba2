from __future__ import annotations

import itertools
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import structlog

from quickbite.core.errors import DuplicateItemError
from quickbite.menu.filters import LISTING_ORDER, MenuItemFilter, SortDirection, SortKey, validate_order
from quickbite.menu.models import MenuItem, MenuItemInput, MenuItemPatch
from quickbite.menu.store import MenuItemStore

logger = structlog.get_logger(__name__)


def _sort_value(item: MenuItem, field: str) -> Any:
    # Plain str comparison orders by code point, like COLLATE "C" in Postgres.
    value = getattr(item, field)
    return value.value if isinstance(value, Enum) else value


class InMemoryMenuItemStore(MenuItemStore):
    """Process-local store with the same semantics as the Postgres one."""

    def __init__(self) -> None:
        self._items: dict[int, MenuItem] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create(self, item: MenuItemInput) -> MenuItem:
        with self._lock:
            self._ensure_unique_name(item.name)
            now = datetime.now(timezone.utc)
            record = MenuItem(
                id=next(self._ids),
                created_at=now,
                updated_at=now,
                **item.model_dump(),
            )
            self._items[record.id] = record
        logger.info("menu_item_stored", item_id=record.id, backend="memory")
        return record.model_copy()

    def get(self, item_id: int) -> MenuItem | None:
        record = self._items.get(item_id)
        return record.model_copy() if record is not None else None

    def find_all(
        self,
        filters: MenuItemFilter | None = None,
        order: tuple[SortKey, ...] = LISTING_ORDER,
    ) -> list[MenuItem]:
        filters = filters or MenuItemFilter()
        with self._lock:
            items = [item.model_copy() for item in self._items.values() if filters.matches(item)]
        # Stable sorts applied from the least significant key upward.
        for key in reversed(validate_order(order)):
            items.sort(
                key=lambda item: _sort_value(item, key.field),
                reverse=key.direction == SortDirection.desc,
            )
        return items

    def update(self, item_id: int, patch: MenuItemPatch) -> MenuItem | None:
        with self._lock:
            existing = self._items.get(item_id)
            if existing is None:
                return None
            changes = patch.changes()
            if not changes:
                return existing.model_copy()
            if "name" in changes:
                self._ensure_unique_name(changes["name"], exclude_id=item_id)
            updated = existing.model_copy(
                update={**changes, "updated_at": datetime.now(timezone.utc)}
            )
            self._items[item_id] = updated
        return updated.model_copy()

    def delete(self, item_id: int) -> bool:
        with self._lock:
            return self._items.pop(item_id, None) is not None

    def ping(self) -> None:
        return None

    def close(self) -> None:
        with self._lock:
            self._items.clear()

    def _ensure_unique_name(self, name: str, exclude_id: int | None = None) -> None:
        for item_id, record in self._items.items():
            if record.name == name and item_id != exclude_id:
                raise DuplicateItemError(name)
