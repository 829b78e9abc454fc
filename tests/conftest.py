"""
Shared fixtures: the real FastAPI app on a throwaway SQLite database.

Settings are read once and cached, so the environment is prepared before any
``homecare`` module is imported.
"""

from __future__ import annotations

import os
import uuid
from types import SimpleNamespace

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["EMAIL_HOST"] = ""
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["ALLOW_ADMIN_REGISTRATION"] = "true"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from homecare.db.database import Base, get_db
from homecare.main import app

API = "/api"
PASSWORD = "Secret123!"


def async_url(path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture
def db_file(tmp_path):
    """A fresh SQLite file with every table created."""
    path = tmp_path / "homecare-test.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return path


@pytest.fixture
def client(db_file):
    test_engine = create_async_engine(async_url(db_file))
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
        test_client.portal.call(test_engine.dispose)
    app.dependency_overrides.clear()


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def register(client: TestClient, role: str, *, email: str | None = None, name: str | None = None) -> SimpleNamespace:
    email = email or f"{role}-{uuid.uuid4().hex[:8]}@example.com"
    resp = client.post(f"{API}/auth/register", json={
        "email": email,
        "password": PASSWORD,
        "userType": role,
        "name": name or f"Test {role.capitalize()}",
        "phone": "+201000000000",
    })
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    return SimpleNamespace(
        id=data["user"]["id"],
        email=email,
        token=data["token"],
        headers=auth_headers(data["token"]),
        user=data["user"],
    )


@pytest.fixture
def admin(client):
    return register(client, "admin")


@pytest.fixture
def make_user(client, admin):
    """Factory: ``make_user("nurse", active=False)``."""
    def _make(role: str, *, active: bool = True, **kwargs) -> SimpleNamespace:
        account = register(client, role, **kwargs)
        if active:
            resp = client.put(f"{API}/admin/users/{account.id}/activate", headers=admin.headers)
            assert resp.status_code == 200, resp.text
        return account
    return _make


@pytest.fixture
def patient(make_user):
    return make_user("patient")


@pytest.fixture
def nurse(make_user):
    return make_user("nurse", name="Nurse A")


@pytest.fixture
def create_request(client):
    def _create(account: SimpleNamespace, **overrides) -> dict:
        body = {
            "patientName": "Amal Hassan",
            "patientAge": "67",
            "serviceType": "prescribed",
            "details": "Daily insulin injection",
            "address": "12 Nile St, Cairo",
            "broadcastToAllNurses": True,
        }
        body.update(overrides)
        resp = client.post(f"{API}/patient/request-service", json=body, headers=account.headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]
    return _create
