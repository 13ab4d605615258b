"""
Registration, login and bearer-token protection
"""

from datetime import timedelta

from auth import create_access_token, decode_access_token
from conftest import create_profile, register


class TestHealth:

    def test_root_and_health(self, client):
        for path in ("/", "/health"):
            response = client.get(path)
            assert response.status_code == 200
            assert response.json() == {"status": "ok", "service": "ai-counsellor-backend"}


class TestRegister:

    def test_register_returns_token_and_user(self, client):
        response = client.post(
            "/auth/register",
            json={"fullName": "Ada Student", "email": "a@b.com", "password": "secret123"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["token"]
        assert body["user"]["email"] == "a@b.com"
        assert body["user"]["onboardingCompleted"] is False
        assert body["user"]["currentStage"] == "building_profile"

    def test_duplicate_email(self, client):
        register(client)
        response = client.post(
            "/auth/register",
            json={"fullName": "Other", "email": "a@b.com", "password": "another1"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"
        assert response.json()["fields"] == ["email"]

    def test_missing_fields(self, client):
        response = client.post("/auth/register", json={"email": "a@b.com"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert "password" in body["fields"]
        assert "fullName" in body["fields"]


class TestLogin:

    def test_login_success(self, client):
        register(client)
        response = client.post("/auth/login", json={"email": "a@b.com", "password": "secret123"})
        assert response.status_code == 200
        assert response.json()["user"]["fullName"] == "Ada Student"

    def test_wrong_password(self, client):
        register(client)
        response = client.post("/auth/login", json={"email": "a@b.com", "password": "wrongpass"})
        assert response.status_code == 401
        assert response.json()["error"] == "AUTH_ERROR"

    def test_unknown_email(self, client):
        response = client.post("/auth/login", json={"email": "nobody@b.com", "password": "secret123"})
        assert response.status_code == 401


class TestCurrentUser:

    def test_requires_token(self, client):
        response = client.get("/auth/user")
        assert response.status_code == 401
        assert response.json()["error"] == "AUTH_ERROR"

    def test_rejects_garbage_token(self, client):
        response = client.get("/auth/user", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_rejects_expired_token(self, client):
        register(client)
        token = create_access_token(1, expires_delta=timedelta(seconds=-5))
        response = client.get("/auth/user", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_rejects_token_for_missing_user(self, client):
        token = create_access_token(999)
        response = client.get("/auth/user", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_returns_user(self, client, auth_headers):
        response = client.get("/auth/user", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["email"] == "a@b.com"
        assert response.json()["currentStage"] == "building_profile"

    def test_token_round_trip(self):
        assert decode_access_token(create_access_token(42)) == 42


class TestAccountLifecycle:

    def test_register_login_and_onboard(self, client):
        """The login token identifies the registered user, whose stage follows the profile."""
        registered = client.post(
            "/auth/register",
            json={"fullName": "Ada Student", "email": "a@b.com", "password": "secret123"},
        ).json()
        user_id = registered["user"]["id"]

        login = client.post("/auth/login", json={"email": "a@b.com", "password": "secret123"})
        assert login.status_code == 200
        token = login.json()["token"]
        assert decode_access_token(token) == user_id
        assert login.json()["user"]["id"] == user_id
        headers = {"Authorization": f"Bearer {token}"}

        before = client.get("/auth/user", headers=headers).json()
        assert before["id"] == user_id
        assert before["onboardingCompleted"] is False
        assert before["currentStage"] == "building_profile"

        create_profile(client, headers)

        after = client.get("/auth/user", headers=headers).json()
        assert after["id"] == user_id
        assert after["onboardingCompleted"] is True
        assert after["currentStage"] == "discovering_universities"
