import os
import tempfile

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("STORAGE_DIR", tempfile.mkdtemp(prefix="dealhub-blobs-"))
os.environ.setdefault("SYS_ADMIN_EMAIL", "sysadmin@example.com")

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import dealhub.core.db as db_module
from dealhub.core.db import Base, build_engine
from dealhub.domain.user_rules import Role
from tests.helpers import make_user


@pytest_asyncio.fixture
async def session_factory(tmp_path, monkeypatch):
    """A fresh file-backed SQLite database per test, wired into the app."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(db_module, "SessionLocal", factory)
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    from dealhub.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def admin(db_session):
    return await make_user(db_session, email="sysadmin@example.com", role=Role.ADMIN, name="Sys Admin")


@pytest_asyncio.fixture
async def customer(db_session):
    return await make_user(db_session, email="buyer@example.com", name="Buyer")
