from __future__ import annotations

from unittest.mock import patch

from quickbite.core.config import settings
from quickbite.db import pool


def test_pool_is_created_once_from_settings() -> None:
    with (
        patch.object(settings, "postgres_dsn", "postgresql://menu:menu@db:5432/menu"),
        patch.object(pool, "ConnectionPool") as mock_pool_cls,
    ):
        first = pool.init_pool()
        second = pool.get_pool()
        pool.close_pool()

    assert first is second
    mock_pool_cls.assert_called_once()
    kwargs = mock_pool_cls.call_args.kwargs
    assert kwargs["conninfo"] == "postgresql://menu:menu@db:5432/menu"
    assert kwargs["max_size"] == settings.postgres_pool_size + settings.postgres_pool_max_overflow
    first.close.assert_called_once()


def test_close_without_pool_is_a_no_op() -> None:
    pool.close_pool()
    pool.close_pool()
