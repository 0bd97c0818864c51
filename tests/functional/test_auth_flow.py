from fastapi.testclient import TestClient

from boutique import config
from boutique.utils.security import ACCESS_COOKIE_NAME


def test_signup_profile_refresh_logout_flow(client):
    res = client.post("/api/v1/auth/signup", json={"name": "Carla", "email": "carla@example.com", "password": "secret123"})
    assert res.status_code == 201
    user_id = res.json()["id"]

    profile = client.get("/api/v1/auth/profile")
    assert profile.status_code == 200
    assert profile.json()["id"] == user_id

    assert client.post("/api/v1/auth/refresh-token").status_code == 200
    assert client.get("/api/v1/auth/profile").status_code == 200

    assert client.post("/api/v1/auth/logout").status_code == 200
    assert client.get("/api/v1/auth/profile").status_code == 401
    assert client.post("/api/v1/auth/refresh-token").status_code == 401

def test_expired_access_token_then_refresh(client, customer, monkeypatch):
    monkeypatch.setattr(config, "ACCESS_TOKEN_TTL_SECONDS", -30)
    client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": "password1"})
    expired = client.get("/api/v1/auth/profile")
    assert expired.status_code == 401
    assert "expiré" in expired.json()["detail"]

    monkeypatch.setattr(config, "ACCESS_TOKEN_TTL_SECONDS", 900)
    assert client.post("/api/v1/auth/refresh-token").status_code == 200
    assert client.get("/api/v1/auth/profile").json()["email"] == "alice@example.com"

def test_login_elsewhere_revokes_first_session(app, customer):
    with TestClient(app) as first, TestClient(app) as second:
        creds = {"email": "alice@example.com", "password": "password1"}
        assert first.post("/api/v1/auth/login", json=creds).status_code == 200
        assert second.post("/api/v1/auth/login", json=creds).status_code == 200
        res = first.post("/api/v1/auth/refresh-token")
        assert res.status_code == 401
        assert res.json()["code"] == "revoked"
        assert second.post("/api/v1/auth/refresh-token").status_code == 200
        assert second.cookies.get(ACCESS_COOKIE_NAME)
