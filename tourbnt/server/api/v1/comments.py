"""
Comment Endpoints.

``post_router`` is mounted on ``/posts`` and carries the comment, reply, like
and moderation routes. ``router`` is mounted on ``/comments`` and lists
comments for the dashboard.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.entities.comments import Comment
from tourbnt.core.database.entities.users import User
from tourbnt.core.database.repositories import CommentRepository, PostRepository
from tourbnt.core.errors import bad_request, forbidden, not_found
from tourbnt.core.logging_config import get_logger
from tourbnt.core.models.io import CommentCreate, CommentRead, CommentThread, CommentUpdate, LikeResult
from tourbnt.core.pagination import FilterSort, filter_sort, hybrid_paginate
from tourbnt.core.responses import success_response
from tourbnt.core.roles import Role, has_role, is_admin
from tourbnt.server.services.deps import CurrentUser, Pagination, SessionDep, StaffUser

from tourbnt.server.api.v1.posts import get_post_or_404

logger = get_logger(__name__)

post_router = APIRouter(tags=["comments"])
router = APIRouter(tags=["comments"])

comment_filters = filter_sort(["approve", "postId"], ["createdAt", "likes", "views"])


async def _get_comment_or_404(session: AsyncSession, comment_id: str) -> Comment:
    comment = await CommentRepository(session).get_by_id(comment_id)
    if comment is None:
        raise not_found("Comment not found")
    return comment


async def _add_comment(session: AsyncSession, post_id: str, user: User, text: str, parent_id=None) -> Comment:
    post = await get_post_or_404(session, post_id)
    if not post.enable_comments:
        raise forbidden("Comments are disabled for this post")
    comment = Comment(post_id=post.id, user_id=user.id, text=text, parent_id=parent_id)
    comment = await CommentRepository(session).create(comment)
    logger.info(f"Comment {comment.id} added to post {post.id} by {user.id}")
    return comment


@post_router.post(
    "/{post_id}/comments",
    status_code=status.HTTP_201_CREATED,
    summary="Add Comment",
    description="Comment on a post. Fails with 403 when the post has comments disabled.",
    response_description="The created comment.",
    responses={400: {"description": "Missing text"}, 404: {"description": "Post not found"}},
)
@post_router.post("/comment/{post_id}", status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_comment(post_id: str, payload: CommentCreate, user: CurrentUser, session: SessionDep):
    comment = await _add_comment(session, post_id, user, payload.text)
    return success_response(CommentRead.serialize(comment), "Comment created successfully")


@post_router.get(
    "/{post_id}/comments",
    summary="List Post Comments",
    description="Top level comments of a post, newest first unless `sortOrder=asc`.",
    response_description="Paginated comments.",
    responses={404: {"description": "Post not found"}},
)
@post_router.get("/comment/post/{post_id}", include_in_schema=False)
async def list_post_comments(post_id: str, session: SessionDep, pagination: Pagination):
    await get_post_or_404(session, post_id)
    stmt = CommentRepository(session).build_post_comments_query(post_id, pagination.sort_order)
    return await hybrid_paginate(
        session, stmt, pagination, serializer=CommentRead.serialize, message="Comments retrieved successfully"
    )


@post_router.get(
    "/comment/unapproved/count",
    summary="Count Unapproved Comments",
    description="Admins count every comment awaiting approval, sellers only those on their own posts.",
    response_description="`{count}`",
    responses={403: {"description": "Neither admin nor seller"}},
)
async def count_unapproved(user: CurrentUser, session: SessionDep):
    repo = CommentRepository(session)
    if is_admin(user.roles):
        count = await repo.count_unapproved()
    elif has_role(user.roles, Role.SELLER.value):
        count = await repo.count_unapproved(post_author_id=user.id)
    else:
        raise forbidden("Access denied")
    return success_response({"count": count}, "Unapproved comment count retrieved successfully")


@post_router.post(
    "/comment/reply/{comment_id}",
    status_code=status.HTTP_201_CREATED,
    summary="Reply To Comment",
    description="Add a reply on the parent comment's post.",
    response_description="The created reply.",
    responses={404: {"description": "Comment or post not found"}},
)
async def reply_to_comment(comment_id: str, payload: CommentCreate, user: CurrentUser, session: SessionDep):
    parent = await _get_comment_or_404(session, comment_id)
    reply = await _add_comment(session, parent.post_id, user, payload.text, parent_id=parent.id)
    return success_response(CommentRead.serialize(reply), "Reply added successfully")


@post_router.patch(
    "/comment/like/{comment_id}",
    summary="Toggle Like",
    description="Like the comment, or remove the caller's like.",
    response_description="`{likes, isLiked}`",
    responses={404: {"description": "Comment not found"}},
)
async def toggle_like(comment_id: str, user: CurrentUser, session: SessionDep):
    comment = await _get_comment_or_404(session, comment_id)
    liked = await CommentRepository(session).toggle_like(comment, user.id)
    return success_response(
        LikeResult(likes=comment.likes, is_liked=liked).dump(), "Comment liked" if liked else "Comment unliked"
    )


@post_router.patch(
    "/comment/view/{comment_id}",
    summary="Record View",
    description="Increment the comment's view counter.",
    response_description="The updated view count.",
    responses={404: {"description": "Comment not found"}},
)
async def record_view(comment_id: str, session: SessionDep):
    repo = CommentRepository(session)
    comment = await _get_comment_or_404(session, comment_id)
    await repo.increment_views(comment.id)
    await session.refresh(comment)
    return success_response({"views": comment.views}, "View recorded")


@post_router.get(
    "/comment/{comment_id}/replies",
    summary="Get Comment Replies",
    description="A comment with its direct replies, oldest reply first.",
    response_description="The comment with `replies`.",
    responses={404: {"description": "Comment not found"}},
)
async def get_replies(comment_id: str, session: SessionDep):
    comment = await _get_comment_or_404(session, comment_id)
    replies = await CommentRepository(session).list_replies(comment.id)
    thread = CommentThread.model_validate(comment)
    thread.replies = [CommentRead.model_validate(reply) for reply in replies]
    return success_response(thread.dump(), "Replies retrieved successfully")


@post_router.patch(
    "/comment/{comment_id}",
    summary="Update Comment",
    description=(
        "The author or an admin may change `text`; an admin or the post author may change `approve`. "
        "`approve` accepts true, 1, \"true\" and \"1\"; anything else means false."
    ),
    response_description="The updated comment.",
    responses={403: {"description": "Not allowed"}, 404: {"description": "Comment not found"}},
)
async def update_comment(comment_id: str, payload: CommentUpdate, user: CurrentUser, session: SessionDep):
    comment = await _get_comment_or_404(session, comment_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise bad_request("Nothing to update")

    admin = is_admin(user.roles)
    if "text" in changes and not (admin or comment.user_id == user.id):
        raise forbidden("You can only edit your own comments")
    if "approve" in changes and not admin:
        post = await PostRepository(session).get_by_id(comment.post_id)
        if post is None or post.author_id != user.id:
            raise forbidden("Only the post author or an admin can approve comments")

    comment = await CommentRepository(session).apply_changes(comment, changes)
    return success_response(CommentRead.serialize(comment), "Comment updated successfully")


@post_router.delete(
    "/comment/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Comments",
    description=(
        "Delete one comment or a comma separated list. Each must be the caller's own, "
        "on the caller's post, or the caller must be an admin. Replies are removed too."
    ),
    responses={403: {"description": "Not allowed"}, 404: {"description": "Comment not found"}},
)
async def delete_comments(comment_id: str, user: CurrentUser, session: SessionDep):
    ids: List[str] = list(dict.fromkeys(part.strip() for part in comment_id.split(",") if part.strip()))
    if not ids:
        raise bad_request("No comment ids given")
    repo = CommentRepository(session)
    comments = await repo.get_many(ids)
    if len(comments) != len(ids):
        raise not_found("Comment not found")

    if not is_admin(user.roles):
        foreign = [c for c in comments if c.user_id != user.id]
        if foreign:
            posts = await PostRepository(session).get_many(list({c.post_id for c in foreign}))
            owned_posts = {post.id for post in posts if post.author_id == user.id}
            if any(c.post_id not in owned_posts for c in foreign):
                raise forbidden("You do not have permission to delete these comments")

    deleted = await repo.delete_with_replies(ids)
    logger.info(f"{deleted} comments deleted by {user.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =====================================================================
# Dashboard listing
# =====================================================================


@router.get(
    "/",
    summary="List Comments",
    description="Admins see every comment, sellers only comments on their own posts. Filters: approve, postId.",
    response_description="Paginated comments.",
    responses={403: {"description": "Neither admin nor seller"}},
)
async def list_comments(
    user: StaffUser, session: SessionDep, pagination: Pagination, fs: FilterSort = Depends(comment_filters)
):
    filters = {"post_id": fs.filters.get("postId")}
    if "approve" in fs.filters:
        filters["approve"] = fs.filters["approve"].strip().lower() in ("true", "1")
    sort_by, sort_order = fs.resolve(pagination)
    stmt = CommentRepository(session).build_scoped_query(
        post_author_id=None if is_admin(user.roles) else user.id,
        filters=filters,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return await hybrid_paginate(
        session, stmt, pagination, serializer=CommentRead.serialize, message="Comments retrieved successfully"
    )
