"""Shared test fixtures."""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections.abc import Callable, Iterable  # noqa: E402
from typing import Any  # noqa: E402
from unittest.mock import AsyncMock, Mock  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
from cassandra.cluster import Session  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from learnhub.auth.security import create_access_token  # noqa: E402
from learnhub.core.locks import AggregateLocks  # noqa: E402
from learnhub.main import create_app  # noqa: E402


class FakeResult(list):
    """Rows plus the parts of a driver ``ResultSet`` the services read."""

    def __init__(self, rows: Iterable[Any] = (), applied: bool = True):
        super().__init__(rows)
        self.was_applied = applied

    def one(self) -> Any:
        return self[0] if self else None


@pytest.fixture
def make_result() -> type[FakeResult]:
    return FakeResult


@pytest.fixture
def mock_session() -> Mock:
    """Cassandra session whose prepared statements are distinct objects."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: Mock(query_string=cql))
    session.aexecute = AsyncMock(return_value=FakeResult())
    return session


@pytest.fixture
def locks() -> AggregateLocks:
    return AggregateLocks()


@pytest.fixture
def app() -> FastAPI:
    """Application without lifespan; tests install services on ``app.state``."""
    return create_app()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def student_id() -> UUID:
    return uuid4()


@pytest.fixture
def creator_id() -> UUID:
    return uuid4()


@pytest.fixture
def admin_id() -> UUID:
    return uuid4()


@pytest.fixture
def auth_headers() -> Callable[[UUID, str], dict[str, str]]:
    """Build an Authorization header for a user id and platform role."""

    def _headers(user_id: UUID, role: str = "student") -> dict[str, str]:
        token = create_access_token(
            {"sub": str(user_id), "email": f"{role}@example.com", "role": role}
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
