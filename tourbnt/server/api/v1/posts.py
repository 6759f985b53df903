"""
Blog Post Endpoints.

Public listing and reading of posts, plus authoring for admins and sellers.
Comment routes nested under ``/posts`` live in ``comments``.
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.entities.posts import Post
from tourbnt.core.database.repositories import PostRepository, UserRepository
from tourbnt.core.errors import forbidden, not_found
from tourbnt.core.logging_config import get_logger
from tourbnt.core.models.io import Breadcrumb, PostCreate, PostDetail, PostRead, PostUpdate, UserSummary
from tourbnt.core.pagination import FilterSort, PaginationParams, filter_sort, hybrid_paginate
from tourbnt.core.responses import success_response
from tourbnt.core.roles import is_admin
from tourbnt.server.services.auth import ensure_owner_or_admin
from tourbnt.server.services.deps import CurrentUser, Pagination, SessionDep, StaffUser

logger = get_logger(__name__)

router = APIRouter(tags=["posts"])

POST_NOT_FOUND = "POST_NOT_FOUND"

post_filters = filter_sort(["status", "author"], ["createdAt", "updatedAt", "title", "views"])


async def serialize_posts(session: AsyncSession, posts: List[Post]) -> List[Dict[str, Any]]:
    """Dump posts with their author embedded as ``{id, name, email}``."""
    authors = await UserRepository(session).get_many(list({post.author_id for post in posts}))
    by_id = {author.id: UserSummary.model_validate(author) for author in authors}
    items = []
    for post in posts:
        read = PostRead.model_validate(post)
        read.author = by_id.get(post.author_id)
        items.append(read.dump())
    return items


async def get_post_or_404(session: AsyncSession, post_id: str) -> Post:
    post = await PostRepository(session).get_by_id(post_id)
    if post is None:
        raise not_found("Post not found", POST_NOT_FOUND)
    return post


async def _owned_post(session: AsyncSession, post_id: str, user) -> Post:
    post = await get_post_or_404(session, post_id)
    if not is_admin(user.roles) and post.author_id != user.id:
        raise forbidden("You do not have permission to modify this post", "FORBIDDEN")
    return post


async def _increment_views(bind, post_id: str) -> None:
    # runs after the response, outside the request scoped session
    async with AsyncSession(bind) as session:
        try:
            await PostRepository(session).increment_views(post_id)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to increment views for post {post_id}: {e}")


def _list_posts(session: AsyncSession, pagination: PaginationParams, fs: FilterSort, author_id=None, search=None):
    filters = {"status": fs.filters.get("status"), "author_id": author_id or fs.filters.get("author")}
    sort_by, sort_order = fs.resolve(pagination)
    return PostRepository(session).build_list_query(filters, search, sort_by, sort_order)


@router.get(
    "/",
    summary="List Posts",
    description="Public paginated post list. Filters: status, author. Sort: createdAt, updatedAt, title, views.",
    response_description="Paginated posts with embedded authors.",
    responses={400: {"description": "Invalid pagination or sort field"}},
)
async def list_posts(session: SessionDep, pagination: Pagination, fs: FilterSort = Depends(post_filters)):
    stmt = _list_posts(session, pagination, fs)
    return await hybrid_paginate(
        session, stmt, pagination, batch_serializer=serialize_posts, message="Posts retrieved successfully"
    )


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    summary="Create Post",
    description="Create a post authored by the caller. Object content is stored as JSON text.",
    response_description="The created post.",
    responses={400: {"description": "Missing title or content"}, 403: {"description": "Not admin or seller"}},
)
async def create_post(payload: PostCreate, user: StaffUser, session: SessionDep):
    post = await PostRepository(session).create(Post(**payload.model_dump(), author_id=user.id))
    logger.info(f"Post {post.id} created by {user.id}")
    return success_response((await serialize_posts(session, [post]))[0], "Post created successfully")


@router.get(
    "/user",
    summary="List My Posts",
    description="Admins see every post, other users only their own. `search` matches the title.",
    response_description="Paginated posts.",
)
async def list_user_posts(
    user: CurrentUser, session: SessionDep, pagination: Pagination, fs: FilterSort = Depends(post_filters)
):
    author_id = None if is_admin(user.roles) else user.id
    stmt = _list_posts(session, pagination, fs, author_id=author_id, search=fs.search)
    return await hybrid_paginate(
        session, stmt, pagination, batch_serializer=serialize_posts, message="Posts retrieved successfully"
    )


@router.get(
    "/user/{user_id}",
    summary="List Posts By User",
    description="Posts of one author. Non-admins may only list their own.",
    response_description="Paginated posts.",
    responses={403: {"description": "Another user's posts"}},
)
async def list_posts_by_user(
    user_id: str,
    user: CurrentUser,
    session: SessionDep,
    pagination: Pagination,
    fs: FilterSort = Depends(post_filters),
):
    ensure_owner_or_admin(user, user_id, "You can only view your own posts")
    stmt = _list_posts(session, pagination, fs, author_id=user_id, search=fs.search)
    return await hybrid_paginate(
        session, stmt, pagination, batch_serializer=serialize_posts, message="Posts retrieved successfully"
    )


@router.get(
    "/{post_id}",
    summary="Get Post",
    description="A post with breadcrumbs. The view counter is bumped after the response is sent.",
    response_description="`{post, breadcrumbs}`",
    responses={404: {"description": "Post not found"}},
)
async def get_post(post_id: str, session: SessionDep, background_tasks: BackgroundTasks):
    post = await get_post_or_404(session, post_id)
    background_tasks.add_task(_increment_views, session.bind, post.id)
    detail = PostDetail(
        post=PostRead.model_validate((await serialize_posts(session, [post]))[0]),
        breadcrumbs=[
            Breadcrumb(label="Home", url="/"),
            Breadcrumb(label="Blog", url="/blog"),
            Breadcrumb(label=post.title, url=f"/blog/{post.id}"),
        ],
    )
    return success_response(detail.dump(), "Post retrieved successfully")


@router.patch(
    "/{post_id}",
    summary="Update Post",
    description="Update a post. Only the author or an admin may edit it.",
    response_description="The updated post.",
    responses={403: {"description": "Not the author"}, 404: {"description": "Post not found"}},
)
async def update_post(post_id: str, payload: PostUpdate, user: CurrentUser, session: SessionDep):
    post = await _owned_post(session, post_id, user)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    post = await PostRepository(session).apply_changes(post, changes)
    return success_response((await serialize_posts(session, [post]))[0], "Post updated successfully")


@router.delete(
    "/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Post",
    description="Delete a post with all of its comments.",
    responses={403: {"description": "Not the author"}, 404: {"description": "Post not found"}},
)
async def delete_post(post_id: str, user: CurrentUser, session: SessionDep):
    post = await _owned_post(session, post_id, user)
    await PostRepository(session).delete_with_comments(post)
    logger.info(f"Post {post_id} deleted by {user.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
