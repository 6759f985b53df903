"""
Comment repository.

Seller scoped queries join through ``posts`` so a seller only sees comments
left on posts they authored.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, or_
from sqlalchemy import update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.comments import Comment, CommentLike
from ..entities.posts import Post
from .base import QueryBuilder, SQLModelRepository


class CommentRepository(SQLModelRepository[Comment]):
    """Repository for comment, reply and like data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Comment)

    def build_post_comments_query(self, post_id: str, sort_order: str = "desc"):
        """Top level comments on a post."""
        stmt = select(Comment).where(Comment.post_id == post_id, Comment.parent_id.is_(None))
        return QueryBuilder.apply_sort(stmt, Comment, "created_at", sort_order)

    def build_scoped_query(
        self,
        post_author_id: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ):
        """All comments, or only those on posts by ``post_author_id`` when given."""
        stmt = select(Comment)
        if post_author_id is not None:
            stmt = stmt.join(Post, Post.id == Comment.post_id).where(Post.author_id == post_author_id)
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, Comment, filters)
        return QueryBuilder.apply_sort(stmt, Comment, sort_by, sort_order)

    async def count_unapproved(self, post_author_id: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(Comment).where(Comment.approve.is_(False))
        if post_author_id is not None:
            stmt = stmt.join(Post, Post.id == Comment.post_id).where(Post.author_id == post_author_id)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def list_replies(self, comment_id: str) -> List[Comment]:
        stmt = select(Comment).where(Comment.parent_id == comment_id).order_by(Comment.created_at.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def increment_views(self, comment_id: str) -> None:
        await self.session.execute(
            sa_update(Comment).where(Comment.id == comment_id).values(views=Comment.views + 1)
        )
        await self.session.commit()

    async def toggle_like(self, comment: Comment, user_id: str) -> bool:
        """Like or unlike ``comment`` for ``user_id``.

        Returns:
            True when the comment is liked after the call
        """
        stmt = select(CommentLike).where(CommentLike.comment_id == comment.id, CommentLike.user_id == user_id)
        existing = (await self.session.execute(stmt)).scalar_one_or_none()
        if existing is not None:
            await self.session.delete(existing)
            comment.likes = max(0, comment.likes - 1)
            liked = False
        else:
            self.session.add(CommentLike(comment_id=comment.id, user_id=user_id))
            comment.likes = comment.likes + 1
            liked = True
        await self.update(comment)
        return liked

    async def delete_with_replies(self, comment_ids: List[str]) -> int:
        """Delete comments, their direct replies and all related likes.

        Returns:
            Number of comment rows removed
        """
        targets = or_(Comment.id.in_(comment_ids), Comment.parent_id.in_(comment_ids))
        doomed = select(Comment.id).where(targets)
        await self.session.execute(sa_delete(CommentLike).where(CommentLike.comment_id.in_(doomed)))
        result = await self.session.execute(sa_delete(Comment).where(targets))
        await self.session.commit()
        return result.rowcount or 0
