"""Shared test configuration and fixtures.

Uses a transactional rollback strategy per test for full isolation:
- Each test runs inside one outer transaction that rolls back afterwards;
  savepoints used by the services nest inside it.
- ``TEST_DATABASE_URL`` selects the database; it defaults to in-memory
  SQLite through aiosqlite so the suite runs without PostgreSQL.
"""

import io
import os
import tempfile
import uuid
from collections.abc import AsyncGenerator
from decimal import Decimal

# Keep the app's local media mount out of the working tree.
os.environ.setdefault("STORAGE_LOCAL_ROOT", os.path.join(tempfile.gettempdir(), "stayhub-test-media"))

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from stayhub.auth.security import create_token_pair, hash_password
from stayhub.client.api import StayHubClient
from stayhub.database import Base, get_db
from stayhub.main import app
from stayhub.models.profile import UserProfile
from stayhub.models.property import STATUS_AVAILABLE, Property
from stayhub.models.user import User
from stayhub.storage import LocalBlobStorage, get_storage

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


def _make_engine():
    if not TEST_DATABASE_URL.startswith("sqlite"):
        return create_async_engine(TEST_DATABASE_URL, echo=False, pool_pre_ping=True)

    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite/aiosqlite emit BEGIN lazily, which breaks SAVEPOINT; take over.
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


# ---------------------------------------------------------------------------
# Session-scoped: create / drop all tables once per test session
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def test_engine():
    """Create a session-scoped engine tied to the session event loop."""
    engine = _make_engine()
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def setup_test_db(test_engine):
    """Create all tables at the start of the session and drop them at the end."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ---------------------------------------------------------------------------
# Per-test: transactional rollback for isolation
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_session(test_engine, setup_test_db) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session wrapped in a transaction that always rolls back."""
    async with test_engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(bind=connection, expire_on_commit=False)

        try:
            yield session
        finally:
            await session.close()
            await transaction.rollback()


@pytest.fixture
def storage(tmp_path) -> LocalBlobStorage:
    """Local blob storage rooted in a per-test temp directory."""
    return LocalBlobStorage(tmp_path / "media", "http://testserver/media")


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, storage: LocalBlobStorage) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the test DB session and storage."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience fixtures: users with profiles
# ---------------------------------------------------------------------------


async def create_user(db_session: AsyncSession, name: str, with_profile: bool = True) -> User:
    """Insert a local user (and, by default, its profile) directly in the DB."""
    unique = uuid.uuid4().hex[:8]
    user = User(
        email=f"{name.split()[0].lower()}-{unique}@test.com",
        hashed_password=hash_password("testpass123"),
        name=name,
        auth_provider="local",
        is_active=True,
    )
    db_session.add(user)
    await db_session.flush()

    if with_profile:
        db_session.add(UserProfile(id=user.id, email=user.email, display_name=name))
        await db_session.flush()
    await db_session.refresh(user)
    return user


def headers_for(user: User) -> dict[str, str]:
    tokens = create_token_pair(str(user.id))
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """The host: owns listings in most tests."""
    return await create_user(db_session, "Test Host")


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict[str, str]:
    """Return Authorization headers for the test user."""
    return headers_for(test_user)


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A guest, distinct from ``test_user``."""
    return await create_user(db_session, "Other Guest")


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict[str, str]:
    return headers_for(other_user)


# ---------------------------------------------------------------------------
# Images and listing payloads
# ---------------------------------------------------------------------------


def make_image(width: int = 64, height: int = 48, fmt: str = "PNG", noise: bool = False) -> bytes:
    """Encode a test image. ``noise=True`` produces an incompressible one."""
    if noise:
        img = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
    else:
        img = Image.new("RGB", (width, height), (200, 120, 40))
    out = io.BytesIO()
    img.save(out, format=fmt)
    return out.getvalue()


def listing_data(**overrides) -> dict:
    """A valid ``PropertyCreate`` payload."""
    data = {
        "title": "Sunny apartment near the park",
        "description": "A bright two bedroom apartment with a balcony, fast wifi and a full kitchen.",
        "location": "Lisbon",
        "price": "150",
        "price_type": "night",
        "bedrooms": 2,
        "bathrooms": "1",
        "amenities": ["wifi", "kitchen"],
        "property_type": "Apartment",
    }
    data.update(overrides)
    return data


@pytest.fixture
def png_bytes() -> bytes:
    return make_image()


async def make_property(db_session: AsyncSession, owner: User, **overrides) -> Property:
    """Insert an available listing directly, bypassing image upload."""
    fields = {
        "owner_id": owner.id,
        "owner_name": owner.name,
        "title": "Sunny apartment near the park",
        "description": "A bright two bedroom apartment with a balcony, fast wifi and a full kitchen.",
        "location": "Lisbon",
        "price": Decimal("150"),
        "price_type": "night",
        "images": ["http://testserver/media/seed.jpg"],
        "image_keys": ["seed.jpg"],
        "bedrooms": 2,
        "bathrooms": Decimal("1"),
        "guests": 4,
        "amenities": ["wifi"],
        "property_type": "Apartment",
        "status": STATUS_AVAILABLE,
    }
    fields.update(overrides)
    prop = Property(**fields)
    db_session.add(prop)
    await db_session.flush()
    return prop


# ---------------------------------------------------------------------------
# Client SDK wired to the in-process app
# ---------------------------------------------------------------------------


def sdk_client() -> StayHubClient:
    """A StayHubClient talking to the app in-process.

    Requests only see the test database while the ``client`` fixture's
    dependency overrides are installed.
    """
    return StayHubClient(base_url="http://testserver", transport=ASGITransport(app=app))


@pytest_asyncio.fixture
async def sdk(client: AsyncClient) -> AsyncGenerator[StayHubClient, None]:
    async with sdk_client() as api:
        yield api
