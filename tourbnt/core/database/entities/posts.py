"""
Blog post entity models.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlmodel import JSON, Field

from ..base import Base, UTCDateTime, new_id, utc_now


class PostBase(Base):
    """Base fields for a blog post."""

    title: str = Field(description="Post title")
    description: Optional[str] = Field(default=None, description="Short summary")
    content: str = Field(description="Post body; structured editor content is stored as a JSON string")
    image: Optional[str] = Field(default=None, description="Cover image URL")
    status: str = Field(default="Draft", description="Draft, Published or Archived")
    enable_comments: bool = Field(default=True, description="Whether readers may comment")


class Post(PostBase, table=True):
    """Persistent blog post.

    Table: posts
    """

    __tablename__ = "posts"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    tags: List[str] = Field(default_factory=list, sa_type=JSON)
    author_id: str = Field(foreign_key="users.id", index=True, max_length=32)
    views: int = Field(default=0)

    created_at: datetime = Field(default_factory=utc_now, index=True, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now}, sa_type=UTCDateTime
    )

    def __repr__(self) -> str:
        return f"Post(id={self.id}, title={self.title!r}, status={self.status})"
