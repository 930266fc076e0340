"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for settings validation
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ADMIN_USER_IDS", "admin-1,admin-2")
os.environ.setdefault("SITE_URL", "https://injapan-food.test")
os.environ.setdefault("LOG_FILE", "logs/test.log")
os.environ.setdefault("REDIS_HOST", "localhost")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import event

from injapan_affiliate.config.database import (
    create_engine,
    create_session_maker,
)
from injapan_affiliate.identity.provider import Identity
from injapan_affiliate.models import AffiliateAccount, Base


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.delete = MagicMock()
    session.refresh = AsyncMock()
    return session


@pytest.fixture
def mock_redis_client():
    """Mock Redis client."""
    client = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    return client


@pytest.fixture
def admin():
    """Admin identity (listed in ADMIN_USER_IDS)."""
    return Identity(id="admin-1", email="admin@injapan.test", display_name="Admin")


@pytest.fixture
def customer():
    """Regular signed-in customer."""
    return Identity(id="user-0042", email="hana@example.com", display_name="Hana")


@pytest_asyncio.fixture
async def engine(tmp_path):
    """
    SQLite database with the full schema.

    BEGIN is emitted explicitly so SAVEPOINTs behave like on PostgreSQL.
    """
    db_engine = create_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'affiliate.db'}", echo=False
    )

    @event.listens_for(db_engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(db_engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield db_engine

    await db_engine.dispose()


@pytest.fixture
def session_maker(engine):
    """Session factory bound to the test database."""
    return create_session_maker(engine)


@pytest_asyncio.fixture
async def session(session_maker):
    """Database session."""
    async with session_maker() as db_session:
        yield db_session


@pytest.fixture
def reload(session_maker):
    """Read a row through a fresh session (no identity-map staleness)."""

    async def _reload(model, id):
        async with session_maker() as fresh:
            return await fresh.get(model, id)

    return _reload


@pytest.fixture
def make_affiliate(session_maker):
    """Factory creating committed affiliate accounts."""

    async def _make(
        user_id: str = "aff-user-7f3k",
        referral_code: str = "JOHX7Q7F3K",
        **kwargs,
    ) -> AffiliateAccount:
        kwargs.setdefault("email", f"{user_id}@example.com")
        kwargs.setdefault("display_name", "John")
        kwargs.setdefault(
            "bank_info",
            {
                "bank_name": "Mizuho",
                "account_number": "1234567",
                "account_name": "John Smith",
            },
        )
        async with session_maker() as db_session:
            affiliate = AffiliateAccount(
                user_id=user_id, referral_code=referral_code, **kwargs
            )
            db_session.add(affiliate)
            await db_session.commit()
            return affiliate

    return _make


@pytest.fixture
def sample_order_total():
    """Typical order total (JPY)."""
    return Decimal("10000")
