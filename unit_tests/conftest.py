"""Shared pytest fixtures for unit tests."""

from decimal import Decimal
from pathlib import Path
from typing import Callable
from unittest.mock import AsyncMock, MagicMock
import sys

import pytest

# Ensure project root is importable when tests run from repository root.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from db import postgres
from implementation.llms.embeddings import EMBEDDING_DIMENSIONS


@pytest.fixture
def fake_embedding() -> list[float]:
    """A vector with the configured embedding dimension."""
    return [0.01] * EMBEDDING_DIMENSIONS


@pytest.fixture
def movie_row() -> tuple:
    """A movies row as returned by fetch_movie_for_review."""
    return ("tt1234567", "Heat", "Crime, Drama", 1995, Decimal("8.3"))


@pytest.fixture
def mock_pool_connection(mocker) -> Callable[..., tuple[MagicMock, AsyncMock]]:
    """Return a factory that mocks pool.connection() -> conn.cursor() and returns (connection, cursor)."""

    def _factory(*, fetchall_result=None, fetchone_result=None, fetchone_side_effect=None):
        cursor = AsyncMock()
        cursor.fetchall.return_value = fetchall_result
        if fetchone_side_effect is not None:
            cursor.fetchone.side_effect = fetchone_side_effect
        else:
            cursor.fetchone.return_value = fetchone_result

        # Build async context manager for conn.cursor().
        cursor_cm = MagicMock()
        cursor_cm.__aenter__ = AsyncMock(return_value=cursor)
        cursor_cm.__aexit__ = AsyncMock(return_value=None)

        connection = MagicMock()
        connection.commit = AsyncMock()
        connection.rollback = AsyncMock()
        connection.execute = AsyncMock()
        connection.cursor.return_value = cursor_cm

        # Build async context manager for pool.connection().
        connection_cm = MagicMock()
        connection_cm.__aenter__ = AsyncMock(return_value=connection)
        connection_cm.__aexit__ = AsyncMock(return_value=None)
        mocker.patch.object(postgres.pool, "connection", return_value=connection_cm)

        return connection, cursor

    return _factory
