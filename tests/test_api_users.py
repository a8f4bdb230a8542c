"""
User API endpoint tests: signup, login, logout and token refresh.
"""

import pytest

from conftest import signup_and_login


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestSignup:

    def test_signup_returns_public_user(self, api_client):
        response = api_client.post(
            "/api/v1/users/signup",
            json={"username": "alice", "password": "secret123", "full_name": "Alice Tester"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["username"] == "alice"
        assert data["full_name"] == "Alice Tester"
        assert "password" not in data
        assert "refresh_token" not in data

    def test_duplicate_username(self, api_client):
        signup_and_login(api_client, "alice")

        response = api_client.post(
            "/api/v1/users/signup",
            json={"username": "alice", "password": "another1", "full_name": "Other Alice"},
        )

        assert response.status_code == 409
        assert response.json()["message"] == "User with this username already exists"

    @pytest.mark.parametrize("payload", [
        {"username": "", "password": "secret123", "full_name": "Alice"},
        {"username": "a" * 51, "password": "secret123", "full_name": "Alice"},
        {"username": "alice", "password": "short", "full_name": "Alice"},
        {"username": "alice", "password": "p" * 51, "full_name": "Alice"},
        {"username": "alice", "password": "secret123", "full_name": ""},
        {"username": "alice", "password": "secret123"},
    ])
    def test_invalid_payload(self, api_client, payload):
        response = api_client.post("/api/v1/users/signup", json=payload)

        assert response.status_code == 422

    def test_password_is_stored_hashed(self, api_client, seeded_db):
        signup_and_login(api_client, "alice", "secret123")

        user = seeded_db.get_user_by_username("alice")
        assert user.password != "secret123"
        assert user.password.startswith("$2")


class TestLogin:

    def test_login_returns_tokens_and_user(self, api_client, seeded_db):
        data = signup_and_login(api_client, "alice")

        assert data["access_token"]
        assert data["refresh_token"]
        assert data["user"]["username"] == "alice"
        assert seeded_db.get_user_by_username("alice").refresh_token == data["refresh_token"]

    def test_wrong_password(self, api_client):
        signup_and_login(api_client, "alice", "secret123")

        response = api_client.post("/api/v1/users/login", json={"username": "alice", "password": "wrong-pass"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    def test_unknown_user(self, api_client):
        response = api_client.post("/api/v1/users/login", json={"username": "ghost", "password": "secret123"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"


class TestLogoutAndRefresh:

    def test_refresh_rotates_tokens(self, api_client):
        tokens = signup_and_login(api_client, "alice")

        response = api_client.get("/api/v1/users/refresh", headers=bearer(tokens["refresh_token"]))

        assert response.status_code == 200
        new_tokens = response.json()
        assert new_tokens["refresh_token"] != tokens["refresh_token"]

        # The old refresh token is no longer accepted
        response = api_client.get("/api/v1/users/refresh", headers=bearer(tokens["refresh_token"]))
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid refresh token"

        # The new access token works
        response = api_client.get("/api/v1/movies", headers=bearer(new_tokens["access_token"]))
        assert response.status_code == 200

    def test_access_token_cannot_refresh(self, api_client):
        tokens = signup_and_login(api_client, "alice")

        response = api_client.get("/api/v1/users/refresh", headers=bearer(tokens["access_token"]))

        assert response.status_code == 401

    def test_logout_revokes_refresh_token(self, api_client, seeded_db):
        tokens = signup_and_login(api_client, "alice")

        response = api_client.post("/api/v1/users/logout", headers=bearer(tokens["access_token"]))
        assert response.status_code == 200
        assert response.json() == {"message": "successfully logged out"}
        assert seeded_db.get_user_by_username("alice").refresh_token is None

        response = api_client.get("/api/v1/users/refresh", headers=bearer(tokens["refresh_token"]))
        assert response.status_code == 401

    def test_logout_requires_token(self, api_client):
        response = api_client.post("/api/v1/users/logout")

        assert response.status_code == 401
