"""Test configuration and fixtures."""

import os

# Settings are read at import time; point them at SQLite before the app loads
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import travelbook.models  # noqa: F401 - register models on the metadata
from travelbook.core.database import Base, get_db
from travelbook.core.security import hash_password
from travelbook.models.user import User, UserRole
from travelbook.schemas.common import ServiceSelection
from travelbook.schemas.package import PackageData
from travelbook.services.auth_service import AuthService
from travelbook.services.media_service import MediaStorage, get_media_storage
from travelbook.services.package_service import PackageService

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_BASE_URL = "http://test"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def media_storage(tmp_path):
    """Upload storage rooted in a temporary directory."""
    return MediaStorage(tmp_path / "upload", TEST_BASE_URL)


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session, media_storage):
    """Create the FastAPI application bound to the test database and storage."""
    from travelbook.main import create_app

    app = create_app()

    # Override database dependency
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_storage] = lambda: media_storage

    yield app

    # Clean up
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url=TEST_BASE_URL) as client:
        yield client


async def _create_user(session: AsyncSession, email: str, password: str, name: str, role: UserRole) -> User:
    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name,
        role=role.value,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin_user(test_session):
    """An administrator account with password `adminpass`."""
    return await _create_user(test_session, "admin@example.com", "adminpass", "Admin", UserRole.ADMIN)


@pytest_asyncio.fixture
async def regular_user(test_session):
    """A client account with password `secret123`."""
    return await _create_user(test_session, "traveler@example.com", "secret123", "Traveler", UserRole.USER)


@pytest_asyncio.fixture
async def other_user(test_session):
    """A second client account."""
    return await _create_user(test_session, "wanderer@example.com", "secret456", "Wanderer", UserRole.USER)


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {AuthService.issue_token(admin_user)}"}


@pytest.fixture
def user_headers(regular_user):
    return {"Authorization": f"Bearer {AuthService.issue_token(regular_user)}"}


@pytest.fixture
def sample_package_data():
    """Sample package fields for an upcoming trip."""
    start = datetime.utcnow() + timedelta(days=30)
    return {
        "from_location": "Berlin",
        "to_location": "Lisbon",
        "start_date": start,
        "end_date": start + timedelta(days=7),
        "base_price": 1000.0,
        "included_services": ServiceSelection(food=True, accommodation=False),
        "food_price": 100.0,
        "accommodation_price": 200.0,
        "description": "A week by the Atlantic",
    }


@pytest.fixture
def package_form_data(sample_package_data):
    """The sample package as multipart form fields."""
    return {
        "fromLocation": sample_package_data["from_location"],
        "toLocation": sample_package_data["to_location"],
        "startDate": sample_package_data["start_date"].isoformat(),
        "endDate": sample_package_data["end_date"].isoformat(),
        "basePrice": str(sample_package_data["base_price"]),
        "includedServices": '{"food": true, "accommodation": false}',
        "foodPrice": str(sample_package_data["food_price"]),
        "accommodationPrice": str(sample_package_data["accommodation_price"]),
        "description": sample_package_data["description"],
    }


@pytest.fixture
def make_package(test_session, admin_user, sample_package_data):
    """Factory creating packages offset from now by whole days."""

    async def _make(start_offset_days: int = 30, duration_days: int = 7, **overrides):
        start = datetime.utcnow() + timedelta(days=start_offset_days)
        fields = {
            **sample_package_data,
            "start_date": start,
            "end_date": start + timedelta(days=duration_days),
            **overrides,
        }
        return await PackageService(test_session).create_package(PackageData(**fields), admin_user)

    return _make
