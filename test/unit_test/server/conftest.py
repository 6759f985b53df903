import os
from typing import AsyncGenerator, Awaitable, Callable, Dict
from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlmodel.pool import StaticPool

from test.settings import test_settings

# Use in-memory SQLite for testing
TEST_DATABASE_URL = test_settings.database.url

# Set test database URL before importing app
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from tourbnt.core.database import create_all, create_sessionmaker  # noqa: E402
from tourbnt.core.database.entities.tours import Tour  # noqa: E402
from tourbnt.core.database.entities.users import User  # noqa: E402
from tourbnt.core.database.repositories import TourRepository, UserRepository  # noqa: E402
from tourbnt.core.metrics import metrics_collector  # noqa: E402
from tourbnt.core.normalize import clear_normalization_cache  # noqa: E402
from tourbnt.core.security import create_access_token, hash_password  # noqa: E402
from tourbnt.server.middleware.rate_limit import auth_limiter, general_limiter  # noqa: E402

MakeUser = Callable[..., Awaitable[User]]


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database per test so no rows leak between tests."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(name="session")
async def session_fixture(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a new session for each test."""
    async with create_sessionmaker(test_engine)() as session:
        yield session


@pytest.fixture(autouse=True)
def _reset_process_state():
    """Metrics, rate limit windows and the normalization cache are process wide."""
    metrics_collector.reset()
    auth_limiter.reset()
    general_limiter.reset()
    clear_normalization_cache()
    yield
    metrics_collector.reset()
    auth_limiter.reset()
    general_limiter.reset()


@pytest_asyncio.fixture(name="client")
async def client_fixture(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client with mocked lifespan and overridden dependencies."""
    from tourbnt.core.database import get_session
    from tourbnt.server.main import app

    async def get_session_override() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_session] = get_session_override

    # Mock the lifespan to prevent database initialization during tests
    async def mock_lifespan(app):
        yield

    with patch("tourbnt.server.main.lifespan", mock_lifespan):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
            yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session: AsyncSession) -> MakeUser:
    """Factory fixture inserting a verified user with the given role."""

    async def _make(
        role: str = "user", email: str = None, name: str = "Test User", password: str = None, **fields
    ) -> User:
        email = email or f"{role}-{os.urandom(4).hex()}@example.com"
        fields.setdefault("verified", True)
        user = User(
            name=name,
            email=email.lower(),
            roles=role,
            password=hash_password(password or test_settings.account.password),
            **fields,
        )
        return await UserRepository(session).create(user)

    return _make


def auth_headers(user: User) -> Dict[str, str]:
    """Bearer header carrying a fresh access token for ``user``."""
    return {"Authorization": f"Bearer {create_access_token(user.id, user.roles)}"}


@pytest_asyncio.fixture
async def admin(make_user: MakeUser) -> User:
    return await make_user("admin", email="admin@example.com", name="Admin")


@pytest_asyncio.fixture
async def seller(make_user: MakeUser) -> User:
    return await make_user("seller", email="seller@example.com", name="Seller")


@pytest_asyncio.fixture
async def other_seller(make_user: MakeUser) -> User:
    return await make_user("seller", email="other-seller@example.com", name="Other Seller")


@pytest_asyncio.fixture
async def regular_user(make_user: MakeUser) -> User:
    return await make_user("user", email="user@example.com", name="Regular User")


@pytest.fixture
def admin_headers(admin: User) -> Dict[str, str]:
    return auth_headers(admin)


@pytest.fixture
def seller_headers(seller: User) -> Dict[str, str]:
    return auth_headers(seller)


@pytest.fixture
def user_headers(regular_user: User) -> Dict[str, str]:
    return auth_headers(regular_user)


@pytest.fixture
def headers_for() -> Callable[[User], Dict[str, str]]:
    return auth_headers


MakeTour = Callable[..., Awaitable[Tour]]


@pytest.fixture
def make_tour(session: AsyncSession) -> MakeTour:
    """Factory fixture inserting a published tour authored by ``author``."""

    async def _make(author: User, title: str = "Ngorongoro Crater Day Trip", **fields) -> Tour:
        fields.setdefault("description", "A full day in the crater with a picnic lunch.")
        fields.setdefault("tour_status", "Published")
        fields.setdefault("price", 150.0)
        return await TourRepository(session).create(Tour(title=title, author_id=author.id, **fields))

    return _make


@pytest_asyncio.fixture
async def tour(make_tour: MakeTour, seller: User) -> Tour:
    return await make_tour(seller)
