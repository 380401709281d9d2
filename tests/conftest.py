import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["ENVIRONMENT"] = "test"
os.environ["TIMEZONE"] = "Asia/Manila"

import pytest
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from ris_app.main import app
from ris_app.core.database import get_async_session
from ris_app.db.init_db import create_tables
from ris_app.auth.jwt_handler import create_access_token
from ris_app.models.shared.enums import UserRole
from ris_app.schemas.common.current_user import CurrentUser

ADMIN_ID = 1
USER_ID = 2
OTHER_USER_ID = 3

@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite database file per test"""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables(test_engine)
    yield test_engine
    await test_engine.dispose()

@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

@pytest.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session

@pytest.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """Create test client bound to the per-test database"""
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

def token_headers(user_id: int, role: UserRole, username: str) -> dict:
    token = create_access_token({"sub": user_id, "role": role.value, "username": username})
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def admin_headers() -> dict:
    return token_headers(ADMIN_ID, UserRole.ADMIN, "admin")

@pytest.fixture
def user_headers() -> dict:
    return token_headers(USER_ID, UserRole.USER, "jdelacruz")

@pytest.fixture
def other_user_headers() -> dict:
    return token_headers(OTHER_USER_ID, UserRole.USER, "msantos")

@pytest.fixture
def admin_user() -> CurrentUser:
    return CurrentUser(id=ADMIN_ID, role=UserRole.ADMIN, username="admin")

@pytest.fixture
def regular_user() -> CurrentUser:
    return CurrentUser(id=USER_ID, role=UserRole.USER, username="jdelacruz")

@pytest.fixture
def create_item(client: AsyncClient, admin_headers: dict):
    """Factory: create an item through the API and return its JSON"""
    async def _create(name: str = "Bond Paper A4", quantity: int = 50, sku: str = None, **extra) -> dict:
        payload = {"name": name, "quantity": quantity, "unit": "ream", "sku": sku, **extra}
        response = await client.post("/api/v1/items/", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create

@pytest.fixture
def create_request(client: AsyncClient, user_headers: dict):
    """Factory: create a request as the regular user and return its JSON"""
    async def _create(lines=None, headers: dict = None, **fields) -> dict:
        payload = {
            "purpose": "Office use",
            "requested_by_name": "Juan Dela Cruz",
            "requested_by_designation": "Trainer",
            "received_by_name": "Juan Dela Cruz",
            "received_by_designation": "Trainer",
            **fields,
        }
        if lines is not None:
            payload["items"] = [{"item_id": item_id, "quantity": quantity} for item_id, quantity in lines]
        response = await client.post("/api/v1/requests/", json=payload, headers=headers or user_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create
