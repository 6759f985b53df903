"""
Post repository.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.comments import Comment, CommentLike
from ..entities.posts import Post
from .base import QueryBuilder, SQLModelRepository


class PostRepository(SQLModelRepository[Post]):
    """Repository for blog post data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Post)

    def build_list_query(
        self,
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ):
        stmt = select(Post)
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, Post, filters)
        if search:
            stmt = stmt.where(Post.title.ilike(f"%{search}%"))
        return QueryBuilder.apply_sort(stmt, Post, sort_by, sort_order)

    async def increment_views(self, post_id: str) -> None:
        """Atomically add one view without loading the row."""
        await self.session.execute(sa_update(Post).where(Post.id == post_id).values(views=Post.views + 1))
        await self.session.commit()

    async def delete_with_comments(self, post: Post) -> None:
        """Delete a post together with its comments and their likes."""
        comment_ids = select(Comment.id).where(Comment.post_id == post.id)
        await self.session.execute(sa_delete(CommentLike).where(CommentLike.comment_id.in_(comment_ids)))
        await self.session.execute(sa_delete(Comment).where(Comment.post_id == post.id))
        await self.session.delete(post)
        await self.session.commit()
