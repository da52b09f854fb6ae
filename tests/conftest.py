"""
Pytest configuration and shared fixtures.
"""

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app


@pytest.fixture
def settings():
    return Settings(mongo_url="mongodb://localhost:27017/testdb", seed_size=5, connect_delay=0.0)


@pytest.fixture
def mongo_client():
    client = mongomock.MongoClient()
    yield client
    client.close()


@pytest.fixture
def db(mongo_client, settings):
    return mongo_client[settings.database_name]


@pytest.fixture
def app(settings, db):
    return create_app(settings, db)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def user(client):
    """A stored user as returned by the API."""
    resp = client.post("/users", json={"name": "Ada Lovelace", "email": "ada@example.com", "age": 36})
    assert resp.status_code == 201
    return resp.json()
