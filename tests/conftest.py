"""Pytest configuration and fixtures."""

from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from contactlink.core.locking import KeyedLock
from contactlink.persistence.database import Base, get_db
from contactlink.persistence.models import *  # noqa: F401, F403
from contactlink.persistence.models.contact import Contact, LinkPrecedence


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite engine with the schema applied."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def keyed_lock():
    """Fresh in-process lock registry."""
    return KeyedLock()


@pytest.fixture
def make_contact(db_session):
    """Insert a contact with explicit timestamps, bypassing the resolver."""

    async def _make_contact(
        email: str | None = None,
        phone_number: str | None = None,
        *,
        id: int | None = None,
        linked_id: int | None = None,
        link_precedence: LinkPrecedence = LinkPrecedence.PRIMARY,
        created_at: datetime | None = None,
    ) -> Contact:
        created_at = created_at or datetime.utcnow()
        contact = Contact(
            id=id,
            email=email,
            phone_number=phone_number,
            linked_id=linked_id,
            link_precedence=link_precedence,
            created_at=created_at,
            updated_at=created_at,
        )
        db_session.add(contact)
        await db_session.commit()
        return contact

    return _make_contact


@pytest.fixture
async def client(db_session):
    """Create a test API client bound to the test session."""
    from contactlink.main import app

    app.dependency_overrides[get_db] = lambda: db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()
