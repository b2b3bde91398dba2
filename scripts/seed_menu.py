from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from quickbite.core.config import settings
from quickbite.core.errors import DuplicateItemError
from quickbite.core.logging import configure_logging
from quickbite.menu import MenuItemStore, ValidationFailure, build_store, validate_create

DEFAULT_MENU_PATH = Path("data/menu.json")

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SeedResult:
    created: int = 0
    skipped: int = 0
    invalid: int = 0


def _load_menu(path: Path) -> list[Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of menu items")
    return data


def seed_menu(store: MenuItemStore, menu_path: Path = DEFAULT_MENU_PATH) -> SeedResult:
    created = skipped = invalid = 0
    for position, raw in enumerate(_load_menu(menu_path)):
        candidate = validate_create(raw)
        if isinstance(candidate, ValidationFailure):
            logger.warning("seed_item_invalid", position=position, error=candidate.message)
            invalid += 1
            continue
        try:
            store.create(candidate)
        except DuplicateItemError:
            logger.info("seed_item_exists", name=candidate.name)
            skipped += 1
            continue
        created += 1
    logger.info("seed_finished", created=created, skipped=skipped, invalid=invalid)
    return SeedResult(created=created, skipped=skipped, invalid=invalid)


if __name__ == "__main__":
    configure_logging(settings.log_level)
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_MENU_PATH
    store = build_store(settings)
    try:
        seed_menu(store, path)
    finally:
        store.close()
