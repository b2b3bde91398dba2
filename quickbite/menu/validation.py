"""
Validation of raw menu item payloads.

Both entry points are pure and never raise for a rejected payload: they
return either the validated value or a ``ValidationFailure`` that lists
every violated field constraint, in field order.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from quickbite.menu.models import (
    DESCRIPTION_MAX_LENGTH,
    DIETARY_TAG_MAX_LENGTH,
    NAME_MAX_LENGTH,
    PRICE_MAX,
    Category,
    MenuItem,
    MenuItemInput,
    MenuItemPatch,
)

REQUIRED_FIELDS = ("name", "price", "category")

# Wire name -> attribute name, in the order violations are reported.
WIRE_FIELDS: dict[str, str] = {
    (info.alias or name): name for name, info in MenuItemInput.model_fields.items()
}

FIELD_RULES: dict[str, str] = {
    "name": f"must be a string of 1 to {NAME_MAX_LENGTH} characters",
    "description": f"must be a string of at most {DESCRIPTION_MAX_LENGTH} characters",
    "price": f"must be a number greater than 0 and at most {PRICE_MAX}",
    "category": "must be one of " + ", ".join(category.value for category in Category),
    "dietaryTag": f"must be a string of at most {DIETARY_TAG_MAX_LENGTH} characters",
    "availability": "must be a boolean",
}


@dataclass(frozen=True)
class FieldIssue:
    field: str
    reason: str


@dataclass(frozen=True)
class ValidationFailure:
    issues: list[FieldIssue] = field(default_factory=list)

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]

    @property
    def message(self) -> str:
        return "Validation error: " + ", ".join(issue.reason for issue in self.issues)


def _reason(wire_name: str, error_type: str, value: Any) -> str:
    if error_type == "missing" or (value is None and wire_name in REQUIRED_FIELDS):
        return f"{wire_name} is required"
    if error_type == "string_pattern_mismatch":
        return f"{wire_name} must not contain NUL characters"
    return f"{wire_name} {FIELD_RULES.get(wire_name, 'is invalid')}"


def _failure_from(exc: ValidationError) -> ValidationFailure:
    order = list(WIRE_FIELDS)
    seen: dict[str, FieldIssue] = {}
    for error in exc.errors():
        wire_name = str(error["loc"][0]) if error["loc"] else "body"
        if wire_name in seen:
            continue
        seen[wire_name] = FieldIssue(
            wire_name, _reason(wire_name, error["type"], error.get("input"))
        )
    issues = sorted(
        seen.values(),
        key=lambda issue: order.index(issue.field) if issue.field in order else len(order),
    )
    return ValidationFailure(issues)


def _not_an_object() -> ValidationFailure:
    return ValidationFailure([FieldIssue("body", "request body must be a JSON object")])


def _supplied_fields(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Known fields present in ``raw``, keyed by wire name; unknown keys are dropped."""
    attribute_to_wire = {name: wire for wire, name in WIRE_FIELDS.items()}
    supplied: dict[str, Any] = {}
    for key, value in raw.items():
        if key in WIRE_FIELDS:
            supplied[key] = value
        elif key in attribute_to_wire:
            supplied.setdefault(attribute_to_wire[key], value)
    return supplied


def _validate(values: Mapping[str, Any]) -> MenuItemInput | ValidationFailure:
    try:
        return MenuItemInput.model_validate(dict(values))
    except ValidationError as exc:
        return _failure_from(exc)


def validate_create(raw: Any) -> MenuItemInput | ValidationFailure:
    if not isinstance(raw, Mapping):
        return _not_an_object()
    return _validate(_supplied_fields(raw))


def validate_update(existing: MenuItem, raw: Any) -> MenuItemPatch | ValidationFailure:
    """Merge ``raw`` over ``existing`` and validate the merged record.

    The returned patch carries only the fields that were supplied.
    """
    if not isinstance(raw, Mapping):
        return _not_an_object()
    supplied = _supplied_fields(raw)
    merged = {**existing.editable_values(), **supplied}
    result = _validate(merged)
    if isinstance(result, ValidationFailure):
        return result
    return MenuItemPatch(
        **{WIRE_FIELDS[wire]: getattr(result, WIRE_FIELDS[wire]) for wire in supplied}
    )
