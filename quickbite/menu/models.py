from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_serializer, field_validator

NAME_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 1000
DIETARY_TAG_MAX_LENGTH = 50
PRICE_MAX = Decimal("99999.99")
CENTS = Decimal("0.01")
# Postgres text columns cannot store NUL.
NO_NUL_PATTERN = r"^[^\x00]*$"

EDITABLE_FIELDS = frozenset(
    {"name", "description", "price", "category", "dietary_tag", "availability"}
)


class Category(str, Enum):
    appetizer = "appetizer"
    main = "main"
    dessert = "dessert"
    beverage = "beverage"


def _check_price(value: Decimal) -> Decimal:
    if value <= 0 or value > PRICE_MAX:
        raise ValueError("price out of range")
    rounded = value.quantize(CENTS, rounding=ROUND_HALF_UP)
    if rounded <= 0:
        raise ValueError("price rounds to zero")
    return rounded


class MenuItemInput(BaseModel):
    """A candidate menu item that satisfies every field invariant."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH, pattern=NO_NUL_PATTERN)
    description: str | None = Field(
        default=None, max_length=DESCRIPTION_MAX_LENGTH, pattern=NO_NUL_PATTERN
    )
    price: Decimal
    category: Category
    dietary_tag: str | None = Field(
        default=None,
        alias="dietaryTag",
        max_length=DIETARY_TAG_MAX_LENGTH,
        pattern=NO_NUL_PATTERN,
    )
    availability: StrictBool = True

    @field_validator("price", mode="before")
    @classmethod
    def reject_boolean_price(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("price must be numeric")
        return value

    @field_validator("price")
    @classmethod
    def validate_price(cls, value: Decimal) -> Decimal:
        return _check_price(value)


class MenuItemPatch(BaseModel):
    """Fields supplied by an update.

    Only the fields present in ``model_fields_set`` are written, so an
    omitted field keeps its stored value while an explicit ``None`` clears it.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    description: str | None = None
    price: Decimal | None = None
    category: Category | None = None
    dietary_tag: str | None = Field(default=None, alias="dietaryTag")
    availability: StrictBool | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class MenuItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    description: str | None = None
    price: Decimal
    category: Category
    dietary_tag: str | None = Field(default=None, alias="dietaryTag")
    availability: bool = True
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @field_serializer("price")
    def serialize_price(self, value: Decimal) -> float:
        return float(value)

    def editable_values(self) -> dict[str, Any]:
        """Editable fields keyed by their wire names, ready to merge an update into."""
        return self.model_dump(by_alias=True, include=set(EDITABLE_FIELDS))

    def to_public(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
