import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

import database
from main import app


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def mock_db(monkeypatch):
    mongo = AsyncMongoMockClient()
    monkeypatch.setattr(database, "_client", mongo)
    monkeypatch.setattr(database, "_db", mongo["lost_and_found_test"])
    return mongo["lost_and_found_test"]


@pytest.fixture
def client(mock_db):
    return TestClient(app)


def register(client, name="Alice", email="a@x.com", password="secret123"):
    res = client.post("/api/users/register", json={"name": name, "email": email, "password": password})
    assert res.status_code == 201, res.text
    return res.json()


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def item_payload(**overrides):
    body = {
        "name": "Wallet",
        "category": "Wallet/Purse",
        "description": "black leather",
        "location": "Main St",
        "contactInfo": "a@x.com",
    }
    body.update(overrides)
    return body


@pytest.fixture
def alice(client):
    data = register(client)
    return {"token": data["token"], "id": data["user"]["id"], "headers": auth_headers(data["token"])}


@pytest.fixture
def bob(client):
    data = register(client, name="Bob", email="b@x.com")
    return {"token": data["token"], "id": data["user"]["id"], "headers": auth_headers(data["token"])}
