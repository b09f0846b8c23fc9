"""
Pytest configuration and fixtures.
"""
import os

# Must be set before the application settings are loaded
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-at-least-32-characters")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.core import database  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.core.database import Base, get_db  # noqa: E402
from app.core.security import create_access_token, get_password_hash  # noqa: E402
from app.main import app  # noqa: E402
from app.models.driver import Driver  # noqa: E402
from app.models.tenant import Tenant  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402
from app.services.webhook_service import webhook_service  # noqa: E402


# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "Haslo12345"
# bcrypt is slow on purpose, hash once per run
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """Create async engine for tests."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(async_engine):
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, monkeypatch, tmp_path) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with overridden dependencies."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    # Background webhook deliveries open their own sessions
    monkeypatch.setattr(database, "AsyncSessionLocal", session_factory)
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(webhook_service, "transport", None)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def api_prefix() -> str:
    return settings.API_V1_PREFIX


# ============== Tenants and users ==============

async def _create_user(
    db: AsyncSession,
    email: str,
    role: UserRole,
    tenant: Tenant = None,
    **extra,
) -> User:
    user = User(
        email=email,
        hashed_password=TEST_PASSWORD_HASH,
        name=email.split("@")[0].title(),
        role=role,
        tenant_id=tenant.id if tenant else None,
        is_active=extra.pop("is_active", True),
        **extra,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def _auth_headers(user: User) -> dict:
    token = create_access_token(user.id, user.role, user.tenant_id)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def tenant(db_session: AsyncSession) -> Tenant:
    tenant = Tenant(name="Trans-Pol Sp. z o.o.", nip="5260250274", city="Warszawa")
    db_session.add(tenant)
    await db_session.commit()
    await db_session.refresh(tenant)
    return tenant


@pytest_asyncio.fixture
async def other_tenant(db_session: AsyncSession) -> Tenant:
    tenant = Tenant(name="Spedycja Nowak", city="Poznan")
    db_session.add(tenant)
    await db_session.commit()
    await db_session.refresh(tenant)
    return tenant


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession, tenant: Tenant) -> User:
    return await _create_user(db_session, "admin@transpol.pl", UserRole.ADMIN, tenant)


@pytest_asyncio.fixture
async def manager_user(db_session: AsyncSession, tenant: Tenant) -> User:
    return await _create_user(db_session, "manager@transpol.pl", UserRole.MANAGER, tenant)


@pytest_asyncio.fixture
async def viewer_user(db_session: AsyncSession, tenant: Tenant) -> User:
    return await _create_user(db_session, "viewer@transpol.pl", UserRole.VIEWER, tenant)


@pytest_asyncio.fixture
async def other_admin(db_session: AsyncSession, other_tenant: Tenant) -> User:
    return await _create_user(db_session, "admin@nowak.pl", UserRole.ADMIN, other_tenant)


@pytest_asyncio.fixture
async def driver_profile(db_session: AsyncSession, tenant: Tenant) -> Driver:
    driver = Driver(tenant_id=tenant.id, first_name="Jan", last_name="Kowalski", phone="+48600100200")
    db_session.add(driver)
    await db_session.commit()
    await db_session.refresh(driver)
    return driver


@pytest_asyncio.fixture
async def driver_user(db_session: AsyncSession, tenant: Tenant, driver_profile: Driver) -> User:
    return await _create_user(
        db_session,
        "jan.kowalski@transpol.pl",
        UserRole.DRIVER,
        tenant,
        driver_id=driver_profile.id,
    )


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return _auth_headers(admin_user)


@pytest.fixture
def manager_headers(manager_user: User) -> dict:
    return _auth_headers(manager_user)


@pytest.fixture
def viewer_headers(viewer_user: User) -> dict:
    return _auth_headers(viewer_user)


@pytest.fixture
def other_admin_headers(other_admin: User) -> dict:
    return _auth_headers(other_admin)


@pytest.fixture
def driver_headers(driver_user: User) -> dict:
    return _auth_headers(driver_user)


# ============== Sample payloads ==============

@pytest.fixture
def sample_order_data() -> dict:
    return {
        "order_number": "ZL/2026/001",
        "origin": "Warszawa, ul. Logistyczna 1",
        "origin_city": "Warszawa",
        "destination": "Berlin, Hafenstrasse 5",
        "destination_city": "Berlin",
        "loading_date": "2026-03-02",
        "unloading_date": "2026-03-04",
        "price_net": 4200.0,
        "currency": "PLN",
        "cargo_description": "Palety z AGD",
        "cargo_weight": 12000,
    }


@pytest.fixture
def sample_contractor_data() -> dict:
    return {
        "name": "Logistyka Wisla S.A.",
        "type": "CLIENT",
        "nip": "5260250274",
        "city": "Krakow",
        "country": "PL",
        "payment_days": 30,
    }
