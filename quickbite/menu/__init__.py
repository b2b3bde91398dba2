from quickbite.core.config import Settings
from quickbite.menu.filters import (
    LISTING_ORDER,
    SEARCH_ORDER,
    InvalidSearchTerm,
    MenuItemFilter,
    SearchTermRequired,
    build_listing_filter,
    build_search_filter,
)
from quickbite.menu.memory_store import InMemoryMenuItemStore
from quickbite.menu.models import Category, MenuItem, MenuItemInput, MenuItemPatch
from quickbite.menu.postgres_store import PostgresMenuItemStore
from quickbite.menu.store import MenuItemStore
from quickbite.menu.validation import FieldIssue, ValidationFailure, validate_create, validate_update


def build_store(settings: Settings) -> MenuItemStore:
    if settings.store_backend == "memory":
        return InMemoryMenuItemStore()
    return PostgresMenuItemStore()


__all__ = [
    "Category",
    "FieldIssue",
    "InMemoryMenuItemStore",
    "InvalidSearchTerm",
    "LISTING_ORDER",
    "MenuItem",
    "MenuItemFilter",
    "MenuItemInput",
    "MenuItemPatch",
    "MenuItemStore",
    "PostgresMenuItemStore",
    "SEARCH_ORDER",
    "SearchTermRequired",
    "ValidationFailure",
    "build_listing_filter",
    "build_search_filter",
    "build_store",
    "validate_create",
    "validate_update",
]
