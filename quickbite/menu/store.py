from __future__ import annotations

from abc import ABC, abstractmethod

from quickbite.menu.filters import LISTING_ORDER, MenuItemFilter, SortKey
from quickbite.menu.models import MenuItem, MenuItemInput, MenuItemPatch


class MenuItemStore(ABC):
    """Persistence for menu items.

    Implementations raise ``DuplicateItemError`` when a name is already
    taken, ``ConstraintViolationError`` when the backend rejects a value and
    ``StoreError`` for anything unexpected.  Lookups of ids that do not exist
    are not errors.
    """

    @abstractmethod
    def create(self, item: MenuItemInput) -> MenuItem:
        raise NotImplementedError

    @abstractmethod
    def get(self, item_id: int) -> MenuItem | None:
        raise NotImplementedError

    @abstractmethod
    def find_all(
        self,
        filters: MenuItemFilter | None = None,
        order: tuple[SortKey, ...] = LISTING_ORDER,
    ) -> list[MenuItem]:
        raise NotImplementedError

    @abstractmethod
    def update(self, item_id: int, patch: MenuItemPatch) -> MenuItem | None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, item_id: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def ping(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return None
