"""Pytest fixtures: app, async client, db session, users, documents."""
import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("MINIO_ACCESS_KEY", "test-access")
os.environ.setdefault("MINIO_SECRET_KEY", "test-secret-key")
os.environ.setdefault("LLM_API_KEY", "test-llm-key")

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from docchat.database import get_db
from docchat.main import app
from docchat.models import Base, Document, User
from docchat.services.auth_service import create_jwt, hash_password

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    eng = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autocommit=False, autoflush=False
    )
    async with async_session() as session:
        yield session


@pytest.fixture
def override_get_db(db_session):
    async def _get_db():
        yield db_session
    return _get_db


@pytest.fixture
async def async_client(override_get_db):
    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


async def _make_user(db: AsyncSession, email: str) -> User:
    user = User(email=email, password_hash=hash_password("password123"))
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def user(db_session) -> User:
    return await _make_user(db_session, "alice@example.com")


@pytest.fixture
async def other_user(db_session) -> User:
    return await _make_user(db_session, "bob@example.com")


@pytest.fixture
def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_jwt(str(user.id))}"}


@pytest.fixture
def make_document(db_session):
    async def _make(owner: User, file_path: str, name: str | None = None, **fields) -> Document:
        doc = Document(
            user_id=owner.id,
            name=name or file_path.rsplit("/", 1)[-1],
            file_path=file_path,
            file_type="application/octet-stream",
            file_size=0,
            **fields,
        )
        db_session.add(doc)
        await db_session.commit()
        await db_session.refresh(doc)
        return doc
    return _make
