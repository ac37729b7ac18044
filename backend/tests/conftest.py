# tests/conftest.py — Shared test fixtures
import os
import uuid
from contextlib import asynccontextmanager

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Use SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-unit-tests-only-min-32-chars"
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("ASSET_STORAGE_ROOT", "./test-assets")

from models import Base, User, Project, UserRole  # noqa: E402
from auth import AuthService  # noqa: E402
from database import get_db_session, enable_sqlite_foreign_keys  # noqa: E402
from main import app  # noqa: E402

TEST_PASSWORD = "Password123"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@asynccontextmanager
async def _test_client(db_engine, raise_app_exceptions: bool = True):
    session_factory = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False,
    )

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db
    transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(db_engine):
    """HTTP test client with overridden DB dependency"""
    async with _test_client(db_engine) as ac:
        yield ac


@pytest_asyncio.fixture(scope="function")
async def error_client(db_engine):
    """Like `client`, but unhandled errors come back as the 500 envelope instead of raising"""
    async with _test_client(db_engine, raise_app_exceptions=False) as ac:
        yield ac


async def make_user(db_session, full_name: str, role: UserRole = UserRole.MEMBER, **kwargs) -> User:
    slug = full_name.lower().replace(" ", ".")
    user = User(
        id=str(uuid.uuid4()),
        full_name=full_name,
        title=kwargs.pop("title", None),
        email=kwargs.pop("email", f"{slug}@sprintboard.io"),
        password_hash=AuthService.hash_password(TEST_PASSWORD),
        role=role,
        is_active=kwargs.pop("is_active", True),
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


async def make_project(db_session, manager: User, members=(), name: str = "Apollo") -> Project:
    """Insert a project directly, bypassing the API (no invitations)."""
    project = Project(id=str(uuid.uuid4()), name=name, manager_id=manager.id)
    project.members = list(members)
    db_session.add(project)
    await db_session.commit()
    return project


@pytest_asyncio.fixture
async def pm_user(db_session):
    """Project manager who owns the test projects"""
    return await make_user(db_session, "Paula Manager", UserRole.PM, title="Delivery Lead")


@pytest_asyncio.fixture
async def other_pm(db_session):
    """A second PM who manages nothing"""
    return await make_user(db_session, "Oscar Other", UserRole.PM)


@pytest_asyncio.fixture
async def member_user(db_session):
    return await make_user(db_session, "Mia Member")


@pytest_asyncio.fixture
async def second_member(db_session):
    return await make_user(db_session, "Noah Second")


@pytest_asyncio.fixture
async def outsider(db_session):
    """MEMBER with no project memberships"""
    return await make_user(db_session, "Zed Outsider")


@pytest_asyncio.fixture
async def project(db_session, pm_user, member_user):
    """Project managed by pm_user with member_user as its only member"""
    return await make_project(db_session, pm_user, members=[member_user])


def get_auth_headers(user: User) -> dict:
    """Generate auth headers for a user"""
    token = AuthService.create_access_token(AuthService.token_claims(user))
    return {"Authorization": f"Bearer {token}"}
