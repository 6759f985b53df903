"""
Tour review entity models.

A traveller keeps one review per tour; writing again replaces it. Replies
are a JSON list on the review row.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import JSON, Field

from ..base import Base, UTCDateTime, new_id, utc_now

REVIEW_STATUSES = ("pending", "approved", "rejected")


class Review(Base, table=True):
    """Persistent review of a tour.

    Table: reviews
    """

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("tour_id", "user_id", name="uq_review_tour_user"),
        {"extend_existing": True},
    )

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    tour_id: str = Field(foreign_key="tours.id", index=True, max_length=32)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=32)
    rating: float = Field(index=True, description="0.5 to 5 in steps of 0.5")
    comment: Optional[str] = Field(default=None)
    status: str = Field(default="pending", index=True)
    likes: int = Field(default=0)
    views: int = Field(default=0)
    replies: List[Dict[str, Any]] = Field(default_factory=list, sa_type=JSON)

    created_at: datetime = Field(default_factory=utc_now, index=True, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now}, sa_type=UTCDateTime
    )
