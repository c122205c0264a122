"""
Shared pytest fixtures.

Every test runs with ``USE_SQLITE=true``.  Unit tests use mocked sessions and
repositories; the store and end-to-end tests get a private in-memory SQLite
engine per test, so no test sees another's rows.
"""

import os

os.environ.setdefault("USE_SQLITE", "true")

from datetime import datetime, timezone  # noqa: E402
from typing import Optional  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from invtracker.core.config import Settings  # noqa: E402
from invtracker.core.resilience import db_circuit_breaker  # noqa: E402
from invtracker.db.session import build_engine, build_sessionmaker  # noqa: E402
from invtracker.models.investment import Investment  # noqa: E402
from invtracker.schemas.investment import InvestmentResponse  # noqa: E402

# ────────────────────────────────────────────────────────────────────────────
# Factory helpers
# ────────────────────────────────────────────────────────────────────────────

INVESTMENT_ID = "33333333-3333-3333-3333-333333333333"
INVESTMENT_ID_2 = "44444444-4444-4444-4444-444444444444"

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
END = datetime(2025, 1, 1, tzinfo=timezone.utc)
CREATED = datetime(2024, 1, 2, 9, 30, tzinfo=timezone.utc)


def investment_payload(**overrides) -> dict:
    """A valid ``POST /inv`` body (the Car Fund example)."""
    payload = {
        "investment_name": "Car Fund",
        "holder_name": "Alice",
        "investment_kind": "FD",
        "return_kind": "Ordinary",
        "investment_amount": 1000,
        "return_amount": 1100,
        "return_rate": 10,
        "start_date": "2024-01-01",
        "end_date": "2025-01-01",
    }
    payload.update(overrides)
    return payload


def make_investment(
    *,
    id: str = INVESTMENT_ID,
    investment_name: str = "Car Fund",
    holder_name: str = "Alice",
    investment_kind: str = "FD",
    return_kind: str = "Ordinary",
    investment_amount: int = 1000,
    return_amount: int = 1100,
    return_rate: int = 10,
    start_date: Optional[datetime] = START,
    end_date: Optional[datetime] = END,
    created_at: Optional[datetime] = None,
) -> Investment:
    """Create an Investment domain object with sensible test defaults."""
    return Investment(
        id=id,
        investment_name=investment_name,
        holder_name=holder_name,
        investment_kind=investment_kind,
        return_kind=return_kind,
        investment_amount=investment_amount,
        return_amount=return_amount,
        return_rate=return_rate,
        start_date=start_date,
        end_date=end_date,
        created_at=created_at or CREATED,
        updated_at=created_at or CREATED,
    )


def make_record(**kwargs) -> InvestmentResponse:
    """An InvestmentResponse as the client receives it."""
    return InvestmentResponse.model_validate(make_investment(**kwargs))


# ────────────────────────────────────────────────────────────────────────────
# Pytest fixtures
# ────────────────────────────────────────────────────────────────────────────


@pytest.fixture()
def mock_db():
    """A mocked AsyncSession that tracks add/commit/refresh/rollback calls."""
    session = AsyncMock()
    session.add = MagicMock()
    session.commit = AsyncMock()
    session.refresh = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.merge = AsyncMock()
    return session


@pytest.fixture(autouse=True)
def _reset_circuit_breaker():
    """The database circuit breaker is module-global; start every test CLOSED."""
    db_circuit_breaker.reset()
    yield
    db_circuit_breaker.reset()


@pytest_asyncio.fixture()
async def sqlite_engine():
    """A private in-memory SQLite database with the schema created."""
    engine = build_engine(Settings(USE_SQLITE=True))
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(sqlite_engine):
    return build_sessionmaker(sqlite_engine)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
