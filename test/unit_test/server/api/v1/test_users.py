import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.repositories import UserRepository, UserSettingRepository
from tourbnt.core.security import MASKED_SECRET, verify_password

pytestmark = pytest.mark.asyncio

USERS = "/api/v1/users"

APPLICATION = {
    "companyName": "Safari Ltd",
    "companyRegistrationNumber": "REG-001",
    "sellerType": "tour operator",
    "website": "https://safari.example.com",
}


class TestCurrentUser:
    async def test_me_requires_authentication(self, client: AsyncClient):
        response = await client.get(f"{USERS}/me")
        assert response.status_code == 401
        assert response.json()["code"] == "AUTH_ERROR"

    async def test_me_rejects_invalid_token(self, client: AsyncClient):
        response = await client.get(f"{USERS}/me", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    async def test_me_hides_password(self, client: AsyncClient, regular_user, user_headers):
        response = await client.get(f"{USERS}/me", headers=user_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == regular_user.id
        assert data["sellerStatus"] == "none"
        assert "password" not in data
        assert "resetPasswordToken" not in data

    async def test_update_me(self, client: AsyncClient, user_headers):
        response = await client.patch(f"{USERS}/me", json={"name": "Renamed", "phone": "+255 700"}, headers=user_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Renamed"
        assert data["phone"] == "+255 700"

    async def test_change_password(self, client: AsyncClient, regular_user, user_headers, test_config):
        response = await client.patch(
            f"{USERS}/me/password",
            json={"currentPassword": test_config.account.password, "newPassword": "brand-new"},
            headers=user_headers,
        )
        assert response.status_code == 200
        assert verify_password("brand-new", regular_user.password)

    async def test_change_password_wrong_current(self, client: AsyncClient, user_headers):
        response = await client.patch(
            f"{USERS}/me/password", json={"currentPassword": "wrong", "newPassword": "x"}, headers=user_headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Current password is incorrect"


class TestSettings:
    async def test_settings_default_empty(self, client: AsyncClient, user_headers):
        response = await client.get(f"{USERS}/me/settings", headers=user_headers)
        assert response.status_code == 200
        assert response.json()["data"]["cloudinaryApiKey"] is None

    async def test_secrets_are_encrypted_and_masked(
        self, client: AsyncClient, regular_user, user_headers, session: AsyncSession
    ):
        response = await client.patch(
            f"{USERS}/me/settings",
            json={"cloudinaryCloud": "demo", "cloudinaryApiKey": "key-123", "cloudinaryApiSecret": "shh"},
            headers=user_headers,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["cloudinaryCloud"] == "demo"
        assert data["cloudinaryApiKey"] == MASKED_SECRET
        assert data["cloudinaryApiSecret"] == MASKED_SECRET
        assert data["openaiApiKey"] is None

        stored = await UserSettingRepository(session).get_for_user(regular_user.id)
        assert stored.cloudinary_api_key not in (None, "key-123")

        response = await client.get(
            f"{USERS}/me/settings/key", params={"keyType": "cloudinary_api_key"}, headers=user_headers
        )
        assert response.status_code == 200
        assert response.json()["data"] == {"keyType": "cloudinary_api_key", "value": "key-123"}

    async def test_masked_value_does_not_overwrite_secret(self, client: AsyncClient, user_headers):
        await client.patch(f"{USERS}/me/settings", json={"openaiApiKey": "sk-real"}, headers=user_headers)
        await client.patch(f"{USERS}/me/settings", json={"openaiApiKey": MASKED_SECRET}, headers=user_headers)

        response = await client.get(f"{USERS}/me/settings/key", params={"keyType": "openai_api_key"}, headers=user_headers)
        assert response.json()["data"]["value"] == "sk-real"

    async def test_unknown_key_type(self, client: AsyncClient, user_headers):
        response = await client.get(f"{USERS}/me/settings/key", params={"keyType": "password"}, headers=user_headers)
        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid key type")


class TestSellerApplications:
    async def test_apply_approve_flow(self, client: AsyncClient, regular_user, user_headers, admin_headers):
        response = await client.post(f"{USERS}/seller/apply", json=APPLICATION, headers=user_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["sellerStatus"] == "pending"
        assert data["sellerInfo"]["companyName"] == "Safari Ltd"
        assert data["sellerInfo"]["isApproved"] is False
        assert data["sellerInfo"]["reapplicationCount"] == 1

        response = await client.get(f"{USERS}/seller-applications", headers=admin_headers)
        assert [applicant["id"] for applicant in response.json()["data"]] == [regular_user.id]

        response = await client.patch(f"{USERS}/{regular_user.id}/approve-seller", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["roles"] == "seller"
        assert data["sellerStatus"] == "approved"

        response = await client.post(f"{USERS}/seller/apply", json=APPLICATION, headers=user_headers)
        assert response.status_code == 400

    async def test_reject_and_reapply(self, client: AsyncClient, regular_user, user_headers, admin_headers):
        await client.post(f"{USERS}/seller/apply", json=APPLICATION, headers=user_headers)
        response = await client.patch(
            f"{USERS}/{regular_user.id}/reject-seller", json={"reason": "Missing licence"}, headers=admin_headers
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["sellerStatus"] == "rejected"
        assert data["sellerInfo"]["rejectionReason"] == "Missing licence"

        response = await client.post(f"{USERS}/seller/apply", json=APPLICATION, headers=user_headers)
        assert response.json()["data"]["sellerInfo"]["reapplicationCount"] == 2

    async def test_seller_status_endpoint(self, client: AsyncClient, regular_user, user_headers, admin_headers):
        await client.post(f"{USERS}/seller/apply", json=APPLICATION, headers=user_headers)

        response = await client.patch(
            f"{USERS}/{regular_user.id}/seller-status", json={"status": "maybe"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_STATUS"

        response = await client.patch(
            f"{USERS}/{regular_user.id}/seller-status",
            json={"status": "rejected", "reason": "Incomplete"},
            headers=admin_headers,
        )
        assert response.json()["data"]["sellerStatus"] == "rejected"

    async def test_approve_without_application(self, client: AsyncClient, regular_user, admin_headers):
        response = await client.patch(f"{USERS}/{regular_user.id}/approve-seller", headers=admin_headers)
        assert response.status_code == 400

    async def test_delete_seller_resets_role(
        self, client: AsyncClient, regular_user, user_headers, admin_headers, session: AsyncSession
    ):
        await client.post(f"{USERS}/seller/apply", json=APPLICATION, headers=user_headers)
        await client.patch(f"{USERS}/{regular_user.id}/approve-seller", headers=admin_headers)

        response = await client.delete(f"{USERS}/{regular_user.id}/delete-seller", headers=admin_headers)
        assert response.status_code == 200

        user = await UserRepository(session).get_by_id(regular_user.id)
        assert user.roles == "user"
        assert user.seller_status == "none"

    async def test_applications_admin_only(self, client: AsyncClient, user_headers):
        response = await client.get(f"{USERS}/seller-applications", headers=user_headers)
        assert response.status_code == 403


class TestUserDirectory:
    async def test_list_users_paginated(self, client: AsyncClient, make_user, admin_headers):
        for index in range(3):
            await make_user(email=f"member{index}@example.com")

        response = await client.get(f"{USERS}/", params={"limit": 2, "page": 1}, headers=admin_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert len(body["items"]) == 2
        assert body["pagination"] == {"page": 1, "limit": 2, "totalItems": 4, "totalPages": 2}

    async def test_list_users_filter_and_search(self, client: AsyncClient, make_user, admin_headers):
        await make_user("seller", email="alpha@example.com", name="Alpha")
        await make_user("user", email="beta@example.com", name="Beta")

        response = await client.get(f"{USERS}/", params={"roles": "seller"}, headers=admin_headers)
        assert [item["email"] for item in response.json()["items"]] == ["alpha@example.com"]

        response = await client.get(f"{USERS}/", params={"search": "bet"}, headers=admin_headers)
        assert [item["email"] for item in response.json()["items"]] == ["beta@example.com"]

    async def test_list_users_rejects_unknown_sort(self, client: AsyncClient, admin_headers):
        response = await client.get(f"{USERS}/", params={"sort": "password"}, headers=admin_headers)
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "INVALID_SORT_FIELD"
        assert body["errors"]["providedField"] == "password"

    async def test_list_users_rejects_bad_limit(self, client: AsyncClient, admin_headers):
        response = await client.get(f"{USERS}/", params={"limit": 500}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PAGINATION"

    async def test_list_users_forbidden_for_sellers(self, client: AsyncClient, seller_headers):
        response = await client.get(f"{USERS}/", headers=seller_headers)
        assert response.status_code == 403

    async def test_get_user_not_found(self, client: AsyncClient, admin_headers):
        response = await client.get(f"{USERS}/missing", headers=admin_headers)
        assert response.status_code == 404

    async def test_owner_cannot_change_own_role(self, client: AsyncClient, regular_user, user_headers):
        response = await client.patch(f"{USERS}/{regular_user.id}", json={"roles": "admin"}, headers=user_headers)
        assert response.status_code == 403

    async def test_cannot_update_other_user(self, client: AsyncClient, admin, user_headers):
        response = await client.patch(f"{USERS}/{admin.id}", json={"name": "Hacked"}, headers=user_headers)
        assert response.status_code == 403

    async def test_admin_changes_role(self, client: AsyncClient, regular_user, admin_headers):
        response = await client.patch(f"{USERS}/{regular_user.id}/role", json={"role": "Guide"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["roles"] == "guide"

        response = await client.patch(f"{USERS}/{regular_user.id}/role", json={"role": "pirate"}, headers=admin_headers)
        assert response.status_code == 400

    async def test_delete_self(self, client: AsyncClient, regular_user, user_headers, session: AsyncSession):
        response = await client.delete(f"{USERS}/{regular_user.id}", headers=user_headers)
        assert response.status_code == 204
        assert await UserRepository(session).get_by_id(regular_user.id) is None


class TestLegacyAuthMirrors:
    async def test_register_and_login_under_users(self, client: AsyncClient):
        response = await client.post(
            f"{USERS}/register", json={"name": "Legacy", "email": "legacy@example.com", "password": "pw"}
        )
        assert response.status_code == 201

        response = await client.post(f"{USERS}/login", json={"email": "legacy@example.com", "password": "pw"})
        assert response.status_code == 200
        assert response.json()["data"]["user"]["email"] == "legacy@example.com"
