import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.entities.catalog import Category, Destination
from tourbnt.core.database.repositories import CatalogRepository

pytestmark = pytest.mark.asyncio

DESTINATIONS = "/api/v1/global/destinations"
CATEGORIES = "/api/v1/global/categories"


async def _admin_create(client: AsyncClient, admin_headers, name: str = "Zanzibar", country: str = "Tanzania", **extra):
    payload = {"name": name, "country": country, **extra}
    response = await client.post(f"{DESTINATIONS}/", json=payload, headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def _submit(client: AsyncClient, headers, name: str = "Lake Natron"):
    response = await client.post(f"{DESTINATIONS}/submit", json={"name": name, "country": "Tanzania"}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestPublicBrowsing:
    async def test_admin_created_items_are_approved_and_public(self, client: AsyncClient, admin, admin_headers):
        created = await _admin_create(client, admin_headers, coverImage="https://img.example.com/z.jpg")
        assert created["approvalStatus"] == "approved"
        assert created["approvedBy"] == admin.id
        assert created["coverImage"] == "https://img.example.com/z.jpg"

        for path in (f"{DESTINATIONS}/", f"{DESTINATIONS}/approved"):
            response = await client.get(path)
            assert response.status_code == 200
            assert [item["name"] for item in response.json()["items"]] == ["Zanzibar"]

    async def test_pending_items_are_hidden(self, client: AsyncClient, seller_headers):
        await _submit(client, seller_headers)
        response = await client.get(f"{DESTINATIONS}/")
        assert response.json()["items"] == []

    async def test_filter_and_search(self, client: AsyncClient, admin_headers):
        await _admin_create(client, admin_headers, "Zanzibar", "Tanzania", description="Spice island")
        await _admin_create(client, admin_headers, "Masai Mara", "Kenya")

        response = await client.get(f"{DESTINATIONS}/", params={"country": "Kenya"})
        assert [item["name"] for item in response.json()["items"]] == ["Masai Mara"]

        response = await client.get(f"{DESTINATIONS}/", params={"search": "spice"})
        assert [item["name"] for item in response.json()["items"]] == ["Zanzibar"]

        response = await client.get(f"{DESTINATIONS}/", params={"sort": "name"})
        assert [item["name"] for item in response.json()["items"]] == ["Masai Mara", "Zanzibar"]

    async def test_lookup_by_country_ignores_case(self, client: AsyncClient, admin_headers):
        await _admin_create(client, admin_headers, "Zanzibar", "Tanzania")
        response = await client.get(f"{DESTINATIONS}/country/tanzania")
        assert [item["name"] for item in response.json()["data"]] == ["Zanzibar"]

    async def test_get_missing(self, client: AsyncClient):
        response = await client.get(f"{DESTINATIONS}/missing")
        assert response.status_code == 404
        assert response.json()["message"] == "Destination not found"


class TestModeration:
    async def test_submit_review_approve(self, client: AsyncClient, seller, seller_headers, admin_headers):
        submitted = await _submit(client, seller_headers)
        assert submitted["approvalStatus"] == "pending"
        assert submitted["submittedBy"] == seller.id
        assert submitted["isInList"] is True

        response = await client.get(f"{DESTINATIONS}/admin/pending", headers=admin_headers)
        assert [item["id"] for item in response.json()["items"]] == [submitted["id"]]

        response = await client.put(f"{DESTINATIONS}/admin/{submitted['id']}/approve", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["approvalStatus"] == "approved"

        response = await client.put(f"{DESTINATIONS}/admin/{submitted['id']}/approve", headers=admin_headers)
        assert response.status_code == 400

    async def test_reject_with_default_reason(self, client: AsyncClient, seller_headers, admin_headers):
        submitted = await _submit(client, seller_headers)
        response = await client.put(f"{DESTINATIONS}/admin/{submitted['id']}/reject", headers=admin_headers)
        data = response.json()["data"]
        assert data["approvalStatus"] == "rejected"
        assert data["rejectionReason"] == "No reason provided"

    async def test_admin_submission_is_approved(self, client: AsyncClient, admin_headers):
        submitted = await _submit(client, admin_headers)
        assert submitted["approvalStatus"] == "approved"

    async def test_review_routes_admin_only(self, client: AsyncClient, seller_headers):
        response = await client.get(f"{DESTINATIONS}/admin/pending", headers=seller_headers)
        assert response.status_code == 403

    async def test_regular_user_cannot_submit(self, client: AsyncClient, user_headers):
        response = await client.post(f"{DESTINATIONS}/submit", json={"name": "x", "country": "y"}, headers=user_headers)
        assert response.status_code == 403


class TestSellerLists:
    async def test_visible_includes_own_pending(self, client: AsyncClient, seller_headers, admin_headers, other_seller, headers_for):
        await _admin_create(client, admin_headers, "Zanzibar")
        await _submit(client, seller_headers, "Lake Natron")

        response = await client.get(f"{DESTINATIONS}/seller/visible", headers=seller_headers)
        items = {item["name"]: item for item in response.json()["data"]}
        assert set(items) == {"Lake Natron", "Zanzibar"}
        assert items["Lake Natron"]["isInList"] is True
        assert items["Zanzibar"]["isInList"] is None

        response = await client.get(f"{DESTINATIONS}/seller/visible", headers=headers_for(other_seller))
        assert [item["name"] for item in response.json()["data"]] == ["Zanzibar"]

    async def test_favorites_toggle(self, client: AsyncClient, seller_headers, admin_headers):
        created = await _admin_create(client, admin_headers)

        response = await client.put(f"{DESTINATIONS}/{created['id']}/favorite", headers=seller_headers)
        assert response.json()["data"] == {"isFavorite": True}

        response = await client.get(f"{DESTINATIONS}/seller/favorites", headers=seller_headers)
        assert [item["id"] for item in response.json()["data"]] == [created["id"]]

        response = await client.put(f"{DESTINATIONS}/{created['id']}/favorite", headers=seller_headers)
        assert response.json()["data"] == {"isFavorite": False}

    async def test_add_and_remove_from_list(self, client: AsyncClient, seller_headers, admin_headers):
        created = await _admin_create(client, admin_headers)

        response = await client.post(f"{DESTINATIONS}/{created['id']}/add-to-list", headers=seller_headers)
        assert response.json()["data"]["isInList"] is True

        response = await client.post(f"{DESTINATIONS}/{created['id']}/remove-from-list", headers=seller_headers)
        assert response.json()["data"]["isInList"] is False

    async def test_pending_items_cannot_be_listed(self, client: AsyncClient, seller_headers, other_seller, headers_for):
        submitted = await _submit(client, seller_headers)
        response = await client.post(
            f"{DESTINATIONS}/{submitted['id']}/add-to-list", headers=headers_for(other_seller)
        )
        assert response.status_code == 400


class TestAdminCrud:
    async def test_update_and_toggle_active(self, client: AsyncClient, admin_headers):
        created = await _admin_create(client, admin_headers)

        response = await client.patch(f"{DESTINATIONS}/{created['id']}", json={"city": "Stone Town"}, headers=admin_headers)
        assert response.json()["data"]["city"] == "Stone Town"

        response = await client.patch(f"{DESTINATIONS}/{created['id']}/toggle-active", headers=admin_headers)
        assert response.json()["data"]["isActive"] is False

        response = await client.get(f"{DESTINATIONS}/", params={"isActive": "true"})
        assert response.json()["items"] == []

    async def test_toggle_active_requires_submitter(self, client: AsyncClient, admin_headers, seller_headers):
        created = await _admin_create(client, admin_headers)
        response = await client.patch(f"{DESTINATIONS}/{created['id']}/toggle-active", headers=seller_headers)
        assert response.status_code == 403

    async def test_delete_removes_preferences(
        self, client: AsyncClient, admin_headers, seller, seller_headers, session: AsyncSession
    ):
        created = await _admin_create(client, admin_headers)
        await client.put(f"{DESTINATIONS}/{created['id']}/favorite", headers=seller_headers)

        response = await client.delete(f"{DESTINATIONS}/{created['id']}", headers=admin_headers)
        assert response.status_code == 204
        assert await CatalogRepository(session, Destination).preferences_for(seller.id) == {}


class TestCategories:
    async def test_category_router_uses_type_lookup(self, client: AsyncClient, admin_headers, session: AsyncSession):
        response = await client.post(
            f"{CATEGORIES}/", json={"name": "Hiking", "type": "Activity"}, headers=admin_headers
        )
        assert response.status_code == 201

        response = await client.get(f"{CATEGORIES}/type/activity")
        assert [item["name"] for item in response.json()["data"]] == ["Hiking"]

        assert await CatalogRepository(session, Category).count() == 1
        assert await CatalogRepository(session, Destination).count() == 0

    async def test_category_not_found_message(self, client: AsyncClient):
        response = await client.get(f"{CATEGORIES}/missing")
        assert response.json()["message"] == "Category not found"
