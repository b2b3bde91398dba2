from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import JSONResponse

from quickbite.api.responses import error_response, success_response
from quickbite.core.errors import ConstraintViolationError, DuplicateItemError
from quickbite.menu import (
    SEARCH_ORDER,
    InvalidSearchTerm,
    MenuItemStore,
    ValidationFailure,
    build_listing_filter,
    build_search_filter,
    validate_create,
    validate_update,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/menu-items", tags=["menu-items"])

NOT_FOUND_MESSAGE = "Menu item not found"
MAX_ITEM_ID = 2**63 - 1


def get_store(request: Request) -> MenuItemStore:
    return request.app.state.store


def parse_item_id(raw: str) -> int | None:
    """Return the id addressed by a path segment, or None if it cannot name a record."""
    if not (raw.isascii() and raw.isdigit()):
        return None
    item_id = int(raw)
    if item_id < 1 or item_id > MAX_ITEM_ID:
        return None
    return item_id


def _not_found() -> JSONResponse:
    return error_response(404, NOT_FOUND_MESSAGE)


def _rejected(failure: ValidationFailure) -> JSONResponse:
    logger.info("menu_item_validation_failed", fields=failure.fields)
    return error_response(400, failure.message)


@router.get("")
def list_menu_items(
    category: str | None = None,
    dietary_tag: str | None = Query(default=None, alias="dietaryTag"),
    store: MenuItemStore = Depends(get_store),
) -> JSONResponse:
    items = store.find_all(build_listing_filter(category, dietary_tag))
    return success_response([item.to_public() for item in items], count=len(items))


@router.get("/search")
def search_menu_items(
    q: str | None = None,
    store: MenuItemStore = Depends(get_store),
) -> JSONResponse:
    try:
        filters = build_search_filter(q)
    except InvalidSearchTerm as exc:
        return error_response(400, str(exc))
    items = store.find_all(filters, SEARCH_ORDER)
    return success_response([item.to_public() for item in items], count=len(items))


@router.get("/{item_id}")
def get_menu_item(item_id: str, store: MenuItemStore = Depends(get_store)) -> JSONResponse:
    parsed_id = parse_item_id(item_id)
    item = store.get(parsed_id) if parsed_id is not None else None
    if item is None:
        return _not_found()
    return success_response(item.to_public())


@router.post("")
def create_menu_item(
    payload: Any = Body(default=None),
    store: MenuItemStore = Depends(get_store),
) -> JSONResponse:
    result = validate_create(payload)
    if isinstance(result, ValidationFailure):
        return _rejected(result)
    try:
        item = store.create(result)
    except (DuplicateItemError, ConstraintViolationError) as exc:
        return error_response(400, str(exc))
    logger.info("menu_item_created", item_id=item.id, category=item.category.value)
    return success_response(
        item.to_public(), status_code=201, message="Menu item created successfully"
    )


@router.put("/{item_id}")
def update_menu_item(
    item_id: str,
    payload: Any = Body(default=None),
    store: MenuItemStore = Depends(get_store),
) -> JSONResponse:
    parsed_id = parse_item_id(item_id)
    existing = store.get(parsed_id) if parsed_id is not None else None
    if existing is None:
        return _not_found()

    result = validate_update(existing, payload)
    if isinstance(result, ValidationFailure):
        return _rejected(result)
    try:
        item = store.update(existing.id, result)
    except (DuplicateItemError, ConstraintViolationError) as exc:
        return error_response(400, str(exc))
    if item is None:
        return _not_found()
    logger.info("menu_item_updated", item_id=item.id, fields=sorted(result.changes()))
    return success_response(item.to_public(), message="Menu item updated successfully")


@router.delete("/{item_id}")
def delete_menu_item(item_id: str, store: MenuItemStore = Depends(get_store)) -> JSONResponse:
    parsed_id = parse_item_id(item_id)
    if parsed_id is None or not store.delete(parsed_id):
        return _not_found()
    logger.info("menu_item_deleted", item_id=parsed_id)
    return success_response(message="Menu item deleted successfully")
