# tests/conftest.py: Shared test fixtures
import os
import uuid

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine

# Use SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-unit-tests-only-min-32-chars"
os.environ["ENVIRONMENT"] = "test"

from models import Base, User
from auth import AuthService
from board_document import BoardDocument
from board_store import BoardStore
from database import get_db_session, make_session_factory
from main import app


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine):
    session_factory = make_session_factory(db_engine)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_engine):
    """HTTP test client with overridden DB dependency"""
    session_factory = make_session_factory(db_engine)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _make_user(db_session, email: str, name: str) -> User:
    user = User(id=str(uuid.uuid4()), email=email, name=name)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def owner(db_session):
    """User who creates the boards"""
    return await _make_user(db_session, "owner@kanban.dev", "Olivia Owner")


@pytest_asyncio.fixture
async def member(db_session):
    """User who gets invited onto boards"""
    return await _make_user(db_session, "member@kanban.dev", "Max Member")


@pytest_asyncio.fixture
async def outsider(db_session):
    """User with no access to any board"""
    return await _make_user(db_session, "outsider@kanban.dev", "Otto Outsider")


def get_auth_headers(user: User) -> dict:
    """Generate auth headers for a user"""
    token = AuthService.create_access_token({"sub": user.id, "email": user.email})
    return {"Authorization": f"Bearer {token}"}


async def create_board(client: AsyncClient, user: User, name: str = "Sprint Board", **extra) -> dict:
    resp = await client.post("/api/boards", json={"name": name, **extra}, headers=get_auth_headers(user))
    assert resp.status_code == 201, resp.text
    return resp.json()


async def add_member(client: AsyncClient, board_id: str, board_owner: User, user: User) -> None:
    """Invite ``user`` and accept on their behalf"""
    resp = await client.post(
        f"/api/boards/{board_id}/invite",
        json={"email": user.email},
        headers=get_auth_headers(board_owner),
    )
    assert resp.status_code == 200, resp.text
    invitation_id = resp.json()["invitation"]["id"]
    resp = await client.post(
        f"/api/boards/invitations/{invitation_id}/respond",
        json={"accept": True},
        headers=get_auth_headers(user),
    )
    assert resp.status_code == 200, resp.text


async def create_task(client: AsyncClient, user: User, board_id: str, column_id: str, title: str, **extra) -> dict:
    resp = await client.post(
        f"/api/boards/{board_id}/columns/{column_id}/tasks",
        json={"title": title, **extra},
        headers=get_auth_headers(user),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def load_board(db_session, board_id: str) -> BoardDocument:
    """Read the stored aggregate in a separate session

    The fixture session keeps its identity map (and the user fixtures in it) untouched.
    """
    session_factory = make_session_factory(db_session.bind)
    async with session_factory() as session:
        return await BoardStore(session).load(board_id)
