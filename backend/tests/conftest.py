"""Shared fixtures: an in-memory Motor database and an API client bound to it.

Every test gets its own database name, so nothing leaks between tests.
The FastAPI lifespan does not run under ASGITransport, so no real MongoDB
connection or index build is attempted.
"""

import os
from uuid import uuid4

os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

import identity
from database import create_document, get_db
from main import app
from schemas import User


@pytest.fixture
def db():
    return AsyncMongoMockClient()[f"skillswap_test_{uuid4().hex[:8]}"]


@pytest.fixture
def make_user(db):
    """Insert a user document directly, skipping password hashing."""
    async def _make(name="Alice", **fields):
        local = name.lower().replace(" ", "-")
        email = fields.pop("email", f"{local}-{uuid4().hex[:6]}@example.com")
        user = User(name=name, email=email, **fields)
        return await create_document(
            db, "user", user.model_dump(exclude={"id", "created_at", "updated_at"}),
        )
    return _make


@pytest.fixture
def auth_headers(db):
    async def _headers(user: dict) -> dict:
        token = await identity.issue_session(db, str(user["_id"]))
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
async def client(db):
    async def override_get_db():
        return db

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c
    app.dependency_overrides.clear()
