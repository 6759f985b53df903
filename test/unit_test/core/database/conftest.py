"""
Database test fixtures.

Every test gets its own in-memory SQLite database with all tables created,
plus a few persisted rows the repository tests build on.
"""

import os
from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlmodel.pool import StaticPool

from test.settings import test_settings

os.environ.setdefault("DATABASE_URL", test_settings.database.url)

from tourbnt.core.database import create_all, create_sessionmaker  # noqa: E402
from tourbnt.core.database.entities.posts import Post  # noqa: E402
from tourbnt.core.database.entities.users import User  # noqa: E402


@pytest_asyncio.fixture
async def in_memory_engine():
    engine = create_async_engine(
        test_settings.database.url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(in_memory_engine) -> AsyncGenerator[AsyncSession, None]:
    async with create_sessionmaker(in_memory_engine)() as session:
        yield session


@pytest_asyncio.fixture
async def seller(db_session: AsyncSession) -> User:
    user = User(name="Seller", email="seller@example.com", password="hash", roles="seller", verified=True)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def reader(db_session: AsyncSession) -> User:
    user = User(name="Reader", email="reader@example.com", password="hash", verified=True)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def post(db_session: AsyncSession, seller: User) -> Post:
    entity = Post(
        title="Gorilla trekking",
        content="Bwindi in three days",
        author_id=seller.id,
        status="Published",
        tags=["uganda"],
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    db_session.add(entity)
    await db_session.commit()
    return entity
