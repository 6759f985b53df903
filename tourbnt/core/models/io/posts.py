"""
Blog post and comment I/O models.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator

from .common import CamelModel, UserSummary


def _content_to_text(value: Any) -> Any:
    # structured editor documents are stored as JSON text
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value


def _parse_tags(value: Any) -> Any:
    if value is None or isinstance(value, list):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, list):
                return [str(tag) for tag in parsed]
        return [tag.strip() for tag in text.split(",") if tag.strip()]
    return value


class PostCreate(CamelModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1, description="Body text or serialized editor document")
    description: Optional[str] = None
    image: Optional[str] = None
    status: str = Field(default="Draft", pattern="^(Draft|Published|Archived)$")
    tags: List[str] = Field(default_factory=list)
    enable_comments: bool = True

    @field_validator("content", mode="before")
    @classmethod
    def content_as_text(cls, value: Any) -> Any:
        return _content_to_text(value)

    @field_validator("tags", mode="before")
    @classmethod
    def tags_as_list(cls, value: Any) -> Any:
        return _parse_tags(value)


class PostUpdate(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    status: Optional[str] = Field(default=None, pattern="^(Draft|Published|Archived)$")
    tags: Optional[List[str]] = None
    enable_comments: Optional[bool] = None

    @field_validator("content", mode="before")
    @classmethod
    def content_as_text(cls, value: Any) -> Any:
        return _content_to_text(value)

    @field_validator("tags", mode="before")
    @classmethod
    def tags_as_list(cls, value: Any) -> Any:
        return _parse_tags(value)


class PostRead(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    content: str
    image: Optional[str] = None
    status: str
    tags: List[str] = Field(default_factory=list)
    enable_comments: bool = True
    author_id: str
    author: Optional[UserSummary] = None
    views: int = 0
    created_at: datetime
    updated_at: datetime


class Breadcrumb(CamelModel):
    label: str
    url: str


class PostDetail(CamelModel):
    post: PostRead
    breadcrumbs: List[Breadcrumb]


# =====================================================================
# Comments
# =====================================================================


def _parse_approve(value: Any) -> Any:
    if value is None:
        return None
    return value is True or value == 1 or str(value).strip().lower() in ("true", "1")


class CommentCreate(CamelModel):
    text: str = Field(min_length=1)


class CommentUpdate(CamelModel):
    text: Optional[str] = None
    approve: Optional[bool] = None

    @field_validator("approve", mode="before")
    @classmethod
    def approve_as_bool(cls, value: Any) -> Any:
        return _parse_approve(value)


class CommentRead(CamelModel):
    id: str
    post_id: str
    user_id: str
    parent_id: Optional[str] = None
    text: str
    approve: bool = False
    likes: int = 0
    views: int = 0
    created_at: datetime
    updated_at: datetime


class CommentThread(CommentRead):
    replies: List[CommentRead] = Field(default_factory=list)


class LikeResult(CamelModel):
    likes: int
    is_liked: bool
