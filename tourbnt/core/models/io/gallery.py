"""
Gallery media I/O models.

Media descriptors keep the snake_case keys returned by the upload provider
(``public_id``, ``secure_url``, ...) so they are plain dictionaries here.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import field_validator

from .common import CamelModel

MediaItem = Dict[str, Any]


def split_tags(value: Any) -> Any:
    if isinstance(value, str):
        return [tag.strip() for tag in value.split(",") if tag.strip()]
    return value


class MediaUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("tags", mode="before")
    @classmethod
    def tags_as_list(cls, value: Any) -> Any:
        return split_tags(value)
