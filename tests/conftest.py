"""Shared test fixtures."""

import os
import tempfile
from collections.abc import Callable, Iterable
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock, Mock
from uuid import UUID, uuid4

import pytest


# Settings are cached on first use, so the environment is fixed before any
# coursehub import.
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="coursehub-test-logs-"))
os.environ.setdefault("LOG_REQUESTS", "false")
os.environ.setdefault("FIREBASE_ENABLED", "false")
os.environ.setdefault("EMAIL_ENABLED", "false")

from cassandra.cluster import Session  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from coursehub.auth.permissions import UserRole  # noqa: E402
from coursehub.auth.security import create_access_token  # noqa: E402


# ==============================================================================
# Cassandra doubles
# ==============================================================================


@pytest.fixture
def make_result() -> Callable[..., MagicMock]:
    """Factory for driver result sets: ``.one()``, iteration, ``was_applied``."""

    def _make(rows: Iterable[Any] = (), was_applied: bool = True) -> MagicMock:
        rows = list(rows)
        result = MagicMock()
        result.one.return_value = rows[0] if rows else None
        result.__iter__.side_effect = lambda: iter(rows)
        result.was_applied = was_applied
        return result

    return _make


@pytest.fixture
def row() -> Callable[..., SimpleNamespace]:
    """Factory for Cassandra rows (attribute access)."""
    return lambda **columns: SimpleNamespace(**columns)


@pytest.fixture
def mock_session(make_result) -> Mock:
    """Session whose prepared statements are the CQL text itself.

    Tests route ``aexecute`` by inspecting the statement text.
    """
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: " ".join(cql.split()))
    session.aexecute = AsyncMock(return_value=make_result())
    return session


# ==============================================================================
# HTTP
# ==============================================================================


@pytest.fixture
def client() -> TestClient:
    """Test client without lifespan (no database connection)."""
    from coursehub.main import app

    return TestClient(app)


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def user_token(user_id: UUID) -> str:
    return create_access_token({"sub": str(user_id), "role": UserRole.USER.value})


@pytest.fixture
def admin_token() -> str:
    return create_access_token({"sub": str(uuid4()), "role": UserRole.ADMIN.value})


@pytest.fixture
def user_headers(user_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {user_token}"}


@pytest.fixture
def admin_headers(admin_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {admin_token}"}
