from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from quickbite.menu.models import MenuItem

SORTABLE_FIELDS = frozenset({"id", "name", "category", "price", "created_at", "updated_at"})

LIKE_ESCAPE = "\\"


class InvalidSearchTerm(ValueError):
    pass


class SearchTermRequired(InvalidSearchTerm):
    def __init__(self) -> None:
        super().__init__("Search term is required")


class SortDirection(str, Enum):
    asc = "asc"
    desc = "desc"


class SortKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    direction: SortDirection = SortDirection.asc


LISTING_ORDER: tuple[SortKey, ...] = (SortKey(field="category"), SortKey(field="name"))
SEARCH_ORDER: tuple[SortKey, ...] = (SortKey(field="name"),)


class MenuItemFilter(BaseModel):
    """Predicates narrowing a listing; unset predicates match everything."""

    model_config = ConfigDict(frozen=True)

    category: str | None = None
    dietary_tag: str | None = None
    name_contains: str | None = None

    @property
    def matches_nothing(self) -> bool:
        """True when a predicate holds a value no stored text can contain."""
        values = (self.category, self.dietary_tag, self.name_contains)
        return any(value is not None and "\x00" in value for value in values)

    def matches(self, item: MenuItem) -> bool:
        if self.category is not None and item.category.value != self.category:
            return False
        if self.dietary_tag is not None and item.dietary_tag != self.dietary_tag:
            return False
        if self.name_contains is not None:
            return self.name_contains.lower() in item.name.lower()
        return True


def build_listing_filter(
    category: str | None = None, dietary_tag: str | None = None
) -> MenuItemFilter:
    # An empty query value means the parameter was not given.
    return MenuItemFilter(
        category=category if category != "" else None,
        dietary_tag=dietary_tag if dietary_tag != "" else None,
    )


def build_search_filter(term: str | None) -> MenuItemFilter:
    cleaned = (term or "").strip()
    if not cleaned:
        raise SearchTermRequired()
    if "\x00" in cleaned:
        raise InvalidSearchTerm("Search term must not contain NUL characters")
    return MenuItemFilter(name_contains=cleaned)


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so ``term`` only ever matches itself."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def validate_order(order: tuple[SortKey, ...]) -> tuple[SortKey, ...]:
    for key in order:
        if key.field not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot order menu items by {key.field!r}")
    return order
