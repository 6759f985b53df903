"""
Comment entity models.

Replies are comments with ``parent_id`` set; they always share the parent's post.
Likes are tracked per user in ``comment_likes`` so a like can be toggled.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from ..base import Base, UTCDateTime, new_id, utc_now


class Comment(Base, table=True):
    """Persistent comment or reply on a post.

    Table: comments
    """

    __tablename__ = "comments"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    post_id: str = Field(foreign_key="posts.id", index=True, max_length=32)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=32)
    parent_id: Optional[str] = Field(default=None, index=True, max_length=32)
    text: str = Field(description="Comment body")
    approve: bool = Field(default=False, description="Moderation flag")
    likes: int = Field(default=0)
    views: int = Field(default=0)

    created_at: datetime = Field(default_factory=utc_now, index=True, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now}, sa_type=UTCDateTime
    )


class CommentLike(Base, table=True):
    """One user's like on one comment.

    Table: comment_likes
    """

    __tablename__ = "comment_likes"
    __table_args__ = (
        UniqueConstraint("comment_id", "user_id", name="uq_comment_likes_comment_user"),
        {"extend_existing": True},
    )

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    comment_id: str = Field(foreign_key="comments.id", index=True, max_length=32)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=32)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
