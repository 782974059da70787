"""Test configuration and fixtures for FileDrive.

Every test gets its own in-memory MongoDB (mongomock-motor) and a frozen
request clock, so share expiry can be simulated by advancing time.
"""
import asyncio
import os
from datetime import datetime, timedelta, timezone
from typing import Dict

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

# Set test environment BEFORE importing app modules
os.environ["MONGO_URI"] = "mongodb://localhost:27017"
os.environ["DB_NAME"] = "filedrive_test"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"

from filedrive.database import ensure_indexes, get_database  # noqa: E402
from filedrive.services.folder_store import FolderStore  # noqa: E402
from filedrive.utils.clock import request_time  # noqa: E402

API = "/api"
PASSWORD = "Sup3r-secret"


class FrozenClock:
    """Stands in for the request clock; tests move it forward explicitly."""

    def __init__(self, now: datetime):
        self.now = now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def mongo_db():
    """Fresh in-memory database for a single test."""
    client = AsyncMongoMockClient()
    return client["filedrive_test"]


@pytest_asyncio.fixture
async def store(mongo_db) -> FolderStore:
    await ensure_indexes(mongo_db)
    return FolderStore(mongo_db)


@pytest.fixture
def client(mongo_db, clock: FrozenClock):
    """API client wired to the in-memory database and the frozen clock."""
    from main import app

    asyncio.run(ensure_indexes(mongo_db))
    app.dependency_overrides[get_database] = lambda: mongo_db
    app.dependency_overrides[request_time] = lambda: clock.now

    yield TestClient(app)

    app.dependency_overrides.clear()


def register_and_login(client: TestClient, username: str) -> Dict:
    response = client.post(
        f"{API}/auth/register", json={"username": username, "password": PASSWORD}
    )
    assert response.status_code == 201, response.text
    response = client.post(
        f"{API}/auth/login", json={"username": username, "password": PASSWORD}
    )
    assert response.status_code == 200, response.text
    data = response.json()
    return {
        "id": data["user"]["id"],
        "username": username,
        "headers": {"Authorization": f"Bearer {data['token']}"},
    }


@pytest.fixture
def owner(client: TestClient) -> Dict:
    return register_and_login(client, "alice")


@pytest.fixture
def visitor(client: TestClient) -> Dict:
    return register_and_login(client, "bob")


def create_folder(client: TestClient, user: Dict, name: str, parent_id: str = None) -> Dict:
    body = {"name": name}
    if parent_id:
        body["parentId"] = parent_id
    response = client.post(f"{API}/folders", json=body, headers=user["headers"])
    assert response.status_code == 201, response.text
    return response.json()["folder"]
