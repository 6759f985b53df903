"""
Media gallery entity.

Each user has at most one gallery row holding three JSON lists of uploaded
media descriptors (images, videos, pdfs). The descriptors mirror what the
Cloudinary upload API returns plus user supplied title, description and tags.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from sqlmodel import JSON, Field

from ..base import Base, UTCDateTime, new_id, utc_now

MEDIA_COLLECTIONS = ("images", "videos", "pdfs")


class Gallery(Base, table=True):
    """Table: galleries"""

    __tablename__ = "galleries"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    user_id: str = Field(foreign_key="users.id", index=True, unique=True, max_length=32)
    images: List[Dict[str, Any]] = Field(default_factory=list, sa_type=JSON)
    videos: List[Dict[str, Any]] = Field(default_factory=list, sa_type=JSON)
    pdfs: List[Dict[str, Any]] = Field(default_factory=list, sa_type=JSON)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now}, sa_type=UTCDateTime
    )

    def collection(self, name: str) -> List[Dict[str, Any]]:
        return list(getattr(self, name))

    def find_media(self, public_id: str):
        """Return ``(collection_name, item)`` for ``public_id`` or ``(None, None)``."""
        for name in MEDIA_COLLECTIONS:
            for item in getattr(self, name):
                if item.get("public_id") == public_id:
                    return name, item
        return None, None
