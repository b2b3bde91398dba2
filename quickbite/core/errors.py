from __future__ import annotations


class MenuStoreError(RuntimeError):
    """Base class for failures reported by a menu item store."""


class StoreError(MenuStoreError):
    def __init__(self, action: str, detail: str) -> None:
        super().__init__(f"Failed to {action}: {detail}")
        self.action = action
        self.detail = detail


class DuplicateItemError(MenuStoreError):
    def __init__(self, name: str | None = None) -> None:
        super().__init__("Menu item with this name already exists")
        self.name = name


class ConstraintViolationError(MenuStoreError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Validation error: {detail}")
        self.detail = detail
