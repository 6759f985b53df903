import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.entities.posts import Post
from tourbnt.core.database.repositories import CommentRepository, PostRepository

pytestmark = pytest.mark.asyncio

POSTS = "/api/v1/posts"


@pytest_asyncio.fixture
async def post(session: AsyncSession, seller) -> Post:
    return await PostRepository(session).create(
        Post(title="Kilimanjaro", content="Summit notes", status="Published", author_id=seller.id)
    )


async def _comment(client: AsyncClient, post_id: str, headers, text: str = "Great trip"):
    response = await client.post(f"{POSTS}/{post_id}/comments", json={"text": text}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestCreateAndList:
    async def test_comment_starts_unapproved(self, client: AsyncClient, post, regular_user, user_headers):
        data = await _comment(client, post.id, user_headers)
        assert data["postId"] == post.id
        assert data["userId"] == regular_user.id
        assert data["approve"] is False
        assert data["likes"] == 0

    async def test_legacy_create_path(self, client: AsyncClient, post, user_headers):
        response = await client.post(f"{POSTS}/comment/{post.id}", json={"text": "Old client"}, headers=user_headers)
        assert response.status_code == 201

    async def test_comment_requires_authentication(self, client: AsyncClient, post):
        response = await client.post(f"{POSTS}/{post.id}/comments", json={"text": "anon"})
        assert response.status_code == 401

    async def test_comment_on_missing_post(self, client: AsyncClient, user_headers):
        response = await client.post(f"{POSTS}/missing/comments", json={"text": "hi"}, headers=user_headers)
        assert response.status_code == 404

    async def test_comments_disabled(self, client: AsyncClient, post, user_headers, session: AsyncSession):
        await PostRepository(session).apply_changes(post, {"enable_comments": False})
        response = await client.post(f"{POSTS}/{post.id}/comments", json={"text": "hi"}, headers=user_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Comments are disabled for this post"

    async def test_list_excludes_replies(self, client: AsyncClient, post, user_headers):
        first = await _comment(client, post.id, user_headers, "first")
        await client.post(f"{POSTS}/comment/reply/{first['id']}", json={"text": "reply"}, headers=user_headers)

        for path in (f"{POSTS}/{post.id}/comments", f"{POSTS}/comment/post/{post.id}"):
            response = await client.get(path)
            assert response.status_code == 200
            body = response.json()
            assert [item["text"] for item in body["items"]] == ["first"]
            assert body["pagination"]["totalItems"] == 1


class TestReplies:
    async def test_reply_thread(self, client: AsyncClient, post, user_headers, seller_headers):
        parent = await _comment(client, post.id, user_headers)
        response = await client.post(
            f"{POSTS}/comment/reply/{parent['id']}", json={"text": "Thanks!"}, headers=seller_headers
        )
        assert response.status_code == 201
        assert response.json()["data"]["parentId"] == parent["id"]

        response = await client.get(f"{POSTS}/comment/{parent['id']}/replies")
        data = response.json()["data"]
        assert data["id"] == parent["id"]
        assert [reply["text"] for reply in data["replies"]] == ["Thanks!"]

    async def test_reply_to_missing_comment(self, client: AsyncClient, user_headers):
        response = await client.post(f"{POSTS}/comment/reply/missing", json={"text": "x"}, headers=user_headers)
        assert response.status_code == 404


class TestLikesAndViews:
    async def test_toggle_like(self, client: AsyncClient, post, user_headers):
        comment = await _comment(client, post.id, user_headers)

        response = await client.patch(f"{POSTS}/comment/like/{comment['id']}", headers=user_headers)
        assert response.json()["data"] == {"likes": 1, "isLiked": True}

        response = await client.patch(f"{POSTS}/comment/like/{comment['id']}", headers=user_headers)
        assert response.json()["data"] == {"likes": 0, "isLiked": False}

    async def test_record_view(self, client: AsyncClient, post, user_headers):
        comment = await _comment(client, post.id, user_headers)
        await client.patch(f"{POSTS}/comment/view/{comment['id']}")
        response = await client.patch(f"{POSTS}/comment/view/{comment['id']}")
        assert response.json()["data"] == {"views": 2}


class TestModeration:
    async def test_post_author_approves(self, client: AsyncClient, post, user_headers, seller_headers):
        comment = await _comment(client, post.id, user_headers)
        response = await client.patch(
            f"{POSTS}/comment/{comment['id']}", json={"approve": "1"}, headers=seller_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["approve"] is True

    async def test_commenter_cannot_approve(self, client: AsyncClient, post, user_headers):
        comment = await _comment(client, post.id, user_headers)
        response = await client.patch(f"{POSTS}/comment/{comment['id']}", json={"approve": True}, headers=user_headers)
        assert response.status_code == 403

    async def test_author_edits_text(self, client: AsyncClient, post, user_headers, seller_headers):
        comment = await _comment(client, post.id, user_headers)
        response = await client.patch(f"{POSTS}/comment/{comment['id']}", json={"text": "edited"}, headers=user_headers)
        assert response.json()["data"]["text"] == "edited"

        response = await client.patch(
            f"{POSTS}/comment/{comment['id']}", json={"text": "not yours"}, headers=seller_headers
        )
        assert response.status_code == 403

    async def test_empty_update(self, client: AsyncClient, post, user_headers):
        comment = await _comment(client, post.id, user_headers)
        response = await client.patch(f"{POSTS}/comment/{comment['id']}", json={}, headers=user_headers)
        assert response.status_code == 400

    async def test_unapproved_count(self, client: AsyncClient, post, user_headers, seller_headers, admin_headers, other_seller, headers_for):
        await _comment(client, post.id, user_headers, "one")
        await _comment(client, post.id, user_headers, "two")

        response = await client.get(f"{POSTS}/comment/unapproved/count", headers=seller_headers)
        assert response.json()["data"] == {"count": 2}

        response = await client.get(f"{POSTS}/comment/unapproved/count", headers=headers_for(other_seller))
        assert response.json()["data"] == {"count": 0}

        response = await client.get(f"{POSTS}/comment/unapproved/count", headers=admin_headers)
        assert response.json()["data"] == {"count": 2}

        response = await client.get(f"{POSTS}/comment/unapproved/count", headers=user_headers)
        assert response.status_code == 403


class TestDelete:
    async def test_delete_many_with_replies(self, client: AsyncClient, post, user_headers, session: AsyncSession):
        first = await _comment(client, post.id, user_headers, "first")
        second = await _comment(client, post.id, user_headers, "second")
        await client.post(f"{POSTS}/comment/reply/{first['id']}", json={"text": "reply"}, headers=user_headers)

        response = await client.delete(f"{POSTS}/comment/{first['id']},{second['id']}", headers=user_headers)
        assert response.status_code == 204
        assert await CommentRepository(session).count() == 0

    async def test_post_author_deletes_foreign_comment(self, client: AsyncClient, post, user_headers, seller_headers):
        comment = await _comment(client, post.id, user_headers)
        response = await client.delete(f"{POSTS}/comment/{comment['id']}", headers=seller_headers)
        assert response.status_code == 204

    async def test_stranger_cannot_delete(self, client: AsyncClient, post, user_headers, other_seller, headers_for):
        comment = await _comment(client, post.id, user_headers)
        response = await client.delete(f"{POSTS}/comment/{comment['id']}", headers=headers_for(other_seller))
        assert response.status_code == 403

    async def test_missing_id_in_list(self, client: AsyncClient, post, user_headers):
        comment = await _comment(client, post.id, user_headers)
        response = await client.delete(f"{POSTS}/comment/{comment['id']},missing", headers=user_headers)
        assert response.status_code == 404


class TestDashboardList:
    async def test_seller_sees_comments_on_own_posts(
        self, client: AsyncClient, post, user_headers, seller_headers, other_seller, headers_for, admin_headers
    ):
        comment = await _comment(client, post.id, user_headers)
        await client.patch(f"{POSTS}/comment/{comment['id']}", json={"approve": True}, headers=seller_headers)
        await _comment(client, post.id, user_headers, "pending")

        response = await client.get("/api/v1/comments/", params={"approve": "false"}, headers=seller_headers)
        assert [item["text"] for item in response.json()["items"]] == ["pending"]

        response = await client.get("/api/v1/comments/", headers=headers_for(other_seller))
        assert response.json()["items"] == []

        response = await client.get("/api/v1/comments/", params={"postId": post.id}, headers=admin_headers)
        assert response.json()["pagination"]["totalItems"] == 2

    async def test_regular_user_forbidden(self, client: AsyncClient, user_headers):
        response = await client.get("/api/v1/comments/", headers=user_headers)
        assert response.status_code == 403
