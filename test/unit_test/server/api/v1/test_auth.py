import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.repositories import UserRepository
from tourbnt.core.security import EMAIL_VERIFICATION, create_purpose_token, verify_password

pytestmark = pytest.mark.asyncio

AUTH = "/api/v1/auth"


async def _register(client: AsyncClient, email: str = "new@example.com", password: str = "Secret123!"):
    return await client.post(f"{AUTH}/register", json={"name": "New User", "email": email, "password": password})


class TestRegister:
    async def test_register_creates_auto_verified_user_in_development(self, client: AsyncClient, session: AsyncSession):
        response = await _register(client, email="  New@Example.com ")
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert "auto-verified" in body["message"]
        assert body["data"]["email"] == "new@example.com"

        user = await UserRepository(session).get_by_email("new@example.com")
        assert user is not None
        assert user.verified is True
        assert user.roles == "user"
        assert user.password != "Secret123!"
        assert verify_password("Secret123!", user.password)

    async def test_register_duplicate_email(self, client: AsyncClient):
        await _register(client)
        response = await _register(client)
        assert response.status_code == 400
        assert response.json()["message"] == "User already exists with this email."

    async def test_register_missing_fields(self, client: AsyncClient):
        response = await client.post(f"{AUTH}/register", json={"email": "x@example.com"})
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert any(error["field"] == "name" for error in body["errors"])


class TestLogin:
    async def test_login_sets_cookies(self, client: AsyncClient, make_user):
        user = await make_user("seller", email="login@example.com", password="pw-123")
        response = await client.post(f"{AUTH}/login", json={"email": "LOGIN@example.com", "password": "pw-123"})
        assert response.status_code == 200
        data = response.json()["data"]["user"]
        assert data == {"id": user.id, "roles": ["seller"], "email": "login@example.com"}
        assert "token" in response.cookies
        assert "refreshToken" in response.cookies

    async def test_login_cookie_authenticates_later_requests(self, client: AsyncClient, make_user):
        await make_user(email="cookie@example.com", password="pw-123")
        await client.post(f"{AUTH}/login", json={"email": "cookie@example.com", "password": "pw-123"})
        response = await client.get("/api/v1/users/me")
        assert response.status_code == 200
        assert response.json()["data"]["email"] == "cookie@example.com"

    async def test_login_unknown_user(self, client: AsyncClient):
        response = await client.post(f"{AUTH}/login", json={"email": "ghost@example.com", "password": "x"})
        assert response.status_code == 404

    async def test_login_wrong_password(self, client: AsyncClient, make_user):
        await make_user(email="wrong@example.com", password="right")
        response = await client.post(f"{AUTH}/login", json={"email": "wrong@example.com", "password": "nope"})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid credentials"

    async def test_logout_clears_cookies(self, client: AsyncClient):
        response = await client.post(f"{AUTH}/logout")
        assert response.status_code == 200
        assert response.json()["message"] == "Logged out successfully"
        set_cookie = ",".join(response.headers.get_list("set-cookie"))
        assert "token=" in set_cookie
        assert "refreshToken=" in set_cookie


class TestRateLimit:
    async def test_auth_routes_are_limited_per_ip(self, client: AsyncClient, monkeypatch):
        from tourbnt.server.middleware.rate_limit import auth_limiter

        monkeypatch.setattr(auth_limiter, "limit", 2)
        for _ in range(2):
            assert (await client.post(f"{AUTH}/logout")).status_code == 200

        response = await client.post(f"{AUTH}/logout")
        assert response.status_code == 429
        body = response.json()
        assert body["code"] == "RATE_LIMIT_EXCEEDED"


class TestEmailVerification:
    async def test_verify_email(self, client: AsyncClient, make_user, session: AsyncSession):
        user = await make_user(email="verify@example.com", verified=False)
        token = create_purpose_token(user.id, EMAIL_VERIFICATION)

        response = await client.post(f"{AUTH}/verify-email", json={"token": token})
        assert response.status_code == 200
        assert response.json()["data"] == {"id": user.id, "verified": True}

    async def test_verify_email_rejects_garbage(self, client: AsyncClient):
        response = await client.post(f"{AUTH}/verify-email", json={"token": "not-a-token"})
        assert response.status_code == 400


class TestPasswordReset:
    async def test_forgot_then_reset_password(self, client: AsyncClient, make_user, session: AsyncSession):
        user = await make_user(email="reset@example.com", password="old-password")

        response = await client.post(f"{AUTH}/forgot-password", json={"email": "reset@example.com"})
        assert response.status_code == 200
        token = response.json()["data"]["resetToken"]

        response = await client.post(f"{AUTH}/reset-password", json={"token": token, "password": "new-password"})
        assert response.status_code == 200

        await session.refresh(user)
        assert verify_password("new-password", user.password)
        assert user.reset_password_token is None

        # tokens are single use
        response = await client.post(f"{AUTH}/reset-password", json={"token": token, "password": "again"})
        assert response.status_code == 400

    async def test_forgot_password_unknown_user(self, client: AsyncClient):
        response = await client.post(f"{AUTH}/forgot-password", json={"email": "ghost@example.com"})
        assert response.status_code == 404

    async def test_reset_password_invalid_token(self, client: AsyncClient):
        response = await client.post(f"{AUTH}/reset-password", json={"token": "bogus", "password": "x"})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid or expired reset token"

    async def test_reset_token_cannot_authenticate(self, client: AsyncClient, admin):
        response = await client.post(f"{AUTH}/forgot-password", json={"email": admin.email})
        token = response.json()["data"]["resetToken"]

        headers = {"Authorization": f"Bearer {token}"}
        response = await client.get("/api/v1/users/me", headers=headers)
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

        response = await client.get("/api/v1/users/", headers=headers)
        assert response.status_code == 401

    async def test_verification_token_cannot_authenticate(self, client: AsyncClient, regular_user):
        token = create_purpose_token(regular_user.id, EMAIL_VERIFICATION)
        response = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
