# tests for auth router - signup, login, me, refresh
# tests for commonground/routers/auth.py

from tests.conftest import ALICE_ID, BOB_ID
from commonground.services.auth_service import create_access_token, create_refresh_token, decode_token, verify_password
from commonground.dependencies import get_current_user
from commonground.main import app


class TestSignup:
    """user registration endpoint"""

    async def test_signup_success(self, client, mock_db):
        resp = await client.post("/auth/signup", json={
            "email": "New.Member@CommonGround.dev",
            "password": "securepass123",
            "displayName": "New Member",
        })
        assert resp.status_code == 201
        data = resp.json()
        assert "accessToken" in data
        assert "refreshToken" in data
        assert data["token_type"] == "bearer"

        stored = mock_db.users.inserted[0]
        assert stored["email"] == "new.member@commonground.dev"
        assert stored["email_verified"] is False
        assert verify_password("securepass123", stored["hashed_password"])
        assert decode_token(data["accessToken"])["sub"] == str(stored["_id"])

    async def test_signup_duplicate_email(self, client):
        resp = await client.post("/auth/signup", json={
            "email": "alice@commonground.dev",
            "password": "securepass123",
            "displayName": "Another Alice",
        })
        assert resp.status_code == 409
        assert "already registered" in resp.json()["detail"]

    async def test_signup_short_password(self, client):
        resp = await client.post("/auth/signup", json={
            "email": "fail@commonground.dev",
            "password": "short",
            "displayName": "Test",
        })
        assert resp.status_code == 422

    async def test_signup_missing_display_name(self, client):
        resp = await client.post("/auth/signup", json={
            "email": "anon@commonground.dev",
            "password": "securepass123",
        })
        assert resp.status_code == 422


class TestLogin:
    """login endpoint"""

    async def test_login_success(self, client):
        resp = await client.post("/auth/login", json={
            "email": "alice@commonground.dev",
            "password": "commonground123",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert decode_token(data["accessToken"])["sub"] == ALICE_ID
        assert decode_token(data["refreshToken"])["type"] == "refresh"

    async def test_login_wrong_password(self, client):
        resp = await client.post("/auth/login", json={
            "email": "alice@commonground.dev",
            "password": "wrong_password",
        })
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid email or password"

    async def test_login_nonexistent_email(self, client):
        resp = await client.post("/auth/login", json={
            "email": "nobody@commonground.dev",
            "password": "commonground123",
        })
        assert resp.status_code == 401


class TestMe:
    """get current user profile"""

    async def test_get_me_with_token(self, client, alice_token):
        resp = await client.get("/auth/me", headers={"Authorization": f"Bearer {alice_token}"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] == ALICE_ID
        assert data["displayName"] == "Alice"
        assert data["emailVerified"] is True
        assert "hashed_password" not in data

    async def test_get_me_unverified(self, bob_client):
        resp = await bob_client.get("/auth/me")
        assert resp.status_code == 200
        assert resp.json()["emailVerified"] is False

    async def test_get_me_no_auth(self, client):
        app.dependency_overrides.pop(get_current_user, None)
        resp = await client.get("/auth/me")
        assert resp.status_code in (401, 403)

    async def test_get_me_refresh_token_rejected(self, client):
        refresh = create_refresh_token({"sub": ALICE_ID})
        resp = await client.get("/auth/me", headers={"Authorization": f"Bearer {refresh}"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid token type"

    async def test_get_me_bad_subject(self, client):
        token = create_access_token({"sub": "not-an-object-id"})
        resp = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "User not found"


class TestRefresh:
    """token refresh endpoint"""

    async def test_refresh_success(self, client):
        refresh = create_refresh_token({"sub": BOB_ID})
        resp = await client.post("/auth/refresh", json={"refreshToken": refresh})
        assert resp.status_code == 200
        data = resp.json()
        assert decode_token(data["accessToken"])["sub"] == BOB_ID

    async def test_refresh_invalid_token(self, client):
        resp = await client.post("/auth/refresh", json={"refreshToken": "invalid.token.here"})
        assert resp.status_code == 401

    async def test_refresh_with_access_token_fails(self, client):
        access = create_access_token({"sub": ALICE_ID})
        resp = await client.post("/auth/refresh", json={"refreshToken": access})
        assert resp.status_code == 401

    async def test_refresh_unknown_user(self, client):
        refresh = create_refresh_token({"sub": "65a0000000000000000000ff"})
        resp = await client.post("/auth/refresh", json={"refreshToken": refresh})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "User not found"
