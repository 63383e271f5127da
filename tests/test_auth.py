import jwt
from datetime import datetime, timedelta, timezone

import config
from database import User
from conftest import register


def test_register_and_fetch_current_user(client):
    headers = register(client, "alice")

    response = client.get("/api/user", headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["username"] == "alice"
    assert body["currency"] == config.DEFAULT_CURRENCY
    assert body["role"] == "user"
    assert "password" not in body


def test_password_is_stored_hashed(client, db):
    register(client, "alice")

    user = db.query(User).filter(User.username == "alice").one()
    assert user.password != "secret123"
    assert user.password.startswith("$2")


def test_duplicate_username_rejected(client):
    register(client, "alice")

    response = client.post(
        "/auth/register",
        json={
            "username": "alice",
            "password": "secret123",
            "name": "Other",
            "email": "other@example.com",
        },
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Username already registered"


def test_duplicate_email_rejected(client):
    register(client, "alice", email="shared@example.com")

    response = client.post(
        "/auth/register",
        json={
            "username": "bobby",
            "password": "secret123",
            "name": "Bobby",
            "email": "shared@example.com",
        },
    )

    assert response.status_code == 400


def test_login(client):
    register(client, "alice")

    ok = client.post("/auth/login", json={"username": "alice", "password": "secret123"})
    bad = client.post("/auth/login", json={"username": "alice", "password": "wrong-one"})
    missing = client.post("/auth/login", json={"username": "nobody", "password": "secret123"})

    assert ok.status_code == 200
    assert ok.json()["token_type"] == "bearer"
    assert bad.status_code == 401
    assert missing.status_code == 401


def test_requests_without_token_are_rejected(client):
    assert client.get("/api/expenses").status_code == 401


def test_invalid_and_expired_tokens(client):
    register(client, "alice")
    expired = jwt.encode(
        {"sub": "alice", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        config.SECRET_KEY,
        algorithm=config.ALGORITHM,
    )

    garbage = client.get("/api/user", headers={"Authorization": "Bearer not-a-token"})
    stale = client.get("/api/user", headers={"Authorization": f"Bearer {expired}"})

    assert garbage.status_code == 401
    assert stale.status_code == 401
    assert stale.json()["detail"] == "Token has expired"


def test_update_currency_setting(client, alice):
    response = client.patch("/api/user/settings", headers=alice, json={"currency": "eur"})

    assert response.status_code == 200
    assert response.json()["currency"] == "EUR"
    assert client.get("/api/user", headers=alice).json()["currency"] == "EUR"
