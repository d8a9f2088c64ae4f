from datetime import timedelta

import anyio

from auth import create_access_token, hash_password, verify_password
from conftest import auth_headers, register


def test_register_returns_token_and_public_user(client):
    data = register(client, email="Alice@Example.com")
    assert data["token"]
    user = data["user"]
    assert user["email"] == "alice@example.com"
    assert user["points"] == 0
    assert user["badges"] == []
    assert user["level"] == "Bronze"
    assert "password" not in user


def test_password_is_stored_hashed(client, mock_db):
    register(client, password="hunter22")
    doc = anyio.run(mock_db["user"].find_one, {"email": "a@x.com"})
    assert doc["password"] != "hunter22"
    assert verify_password("hunter22", doc["password"])


def test_duplicate_email_is_rejected(client):
    register(client, email="a@x.com")
    res = client.post("/api/users/register", json={"name": "Again", "email": "A@X.com", "password": "pw"})
    assert res.status_code == 400
    assert res.json()["detail"] == "User already exists"


def test_register_requires_password(client):
    res = client.post("/api/users/register", json={"name": "Alice", "email": "a@x.com"})
    assert res.status_code == 400
    assert "password" in res.json()["detail"]


def test_login(client):
    register(client, password="secret123")
    res = client.post("/api/users/login", json={"email": "A@x.com", "password": "secret123"})
    assert res.status_code == 200
    assert res.json()["user"]["name"] == "Alice"
    assert res.json()["token"]


def test_login_wrong_password(client):
    register(client, password="secret123")
    res = client.post("/api/users/login", json={"email": "a@x.com", "password": "nope"})
    assert res.status_code == 401


def test_login_unknown_email(client):
    res = client.post("/api/users/login", json={"email": "ghost@x.com", "password": "nope"})
    assert res.status_code == 401


def test_protected_route_without_token(client):
    res = client.get("/api/items/user/items")
    assert res.status_code == 401
    assert res.json()["detail"] == "No token, authorization denied"


def test_protected_route_with_garbage_token(client):
    res = client.get("/api/items/user/items", headers=auth_headers("not-a-jwt"))
    assert res.status_code == 401


def test_expired_token(client):
    user = register(client)["user"]
    token = create_access_token({"sub": user["id"]}, expires_delta=timedelta(minutes=-5))
    res = client.get("/api/users/me", headers=auth_headers(token))
    assert res.status_code == 401


def test_token_for_unknown_user(client):
    token = create_access_token({"sub": "64b7f0c2a1b2c3d4e5f60718"})
    res = client.get("/api/users/me", headers=auth_headers(token))
    assert res.status_code == 401


def test_me(client, alice):
    res = client.get("/api/users/me", headers=alice["headers"])
    assert res.status_code == 200
    assert res.json()["id"] == alice["id"]


def test_update_profile_ignores_protected_fields(client, alice):
    res = client.put(
        "/api/users/me",
        headers=alice["headers"],
        json={"bio": "I find things", "zipCode": "12345", "points": 9999, "email": "evil@x.com"},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["bio"] == "I find things"
    assert body["zipCode"] == "12345"
    assert body["points"] == 0
    assert body["email"] == "a@x.com"


def test_hash_is_salted():
    assert hash_password("same") != hash_password("same")
