"""
Tour entity models.

Category ids, gallery image URLs and the tour's fact values are JSON
documents on the tour row. Rating aggregates are denormalized here and
recalculated whenever a review changes.
"""

from __future__ import annotations

import secrets
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import JSON, Field

from ..base import Base, UTCDateTime, new_id, utc_now

TOUR_STATUSES = ("Draft", "Published")


def new_tour_code() -> str:
    """Short public tour code, e.g. ``TR-4F1A9C``."""
    return f"TR-{secrets.token_hex(3).upper()}"


class TourBase(Base):
    """Base fields for a tour listing."""

    title: str = Field(description="Tour title")
    description: str = Field(description="Full description")
    excerpt: Optional[str] = Field(default=None, description="Teaser shown on cards")
    outline: Optional[str] = Field(default=None, description="Day by day outline")
    price: float = Field(default=0.0, index=True)
    discount_enabled: bool = Field(default=False)
    discount_price: Optional[float] = Field(default=None)
    is_special_offer: bool = Field(default=False)
    tour_status: str = Field(default="Draft", index=True, description="Draft or Published")
    destination_id: Optional[str] = Field(default=None, foreign_key="destinations.id", index=True, max_length=32)
    cover_image: Optional[str] = Field(default=None)
    max_group_size: Optional[int] = Field(default=None, description="Seats per departure; unlimited when unset")


class Tour(TourBase, table=True):
    """Persistent tour.

    Table: tours
    """

    __tablename__ = "tours"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    code: str = Field(default_factory=new_tour_code, index=True, unique=True, max_length=32)
    category_ids: List[str] = Field(default_factory=list, sa_type=JSON)
    images: List[str] = Field(default_factory=list, sa_type=JSON)
    facts: List[Dict[str, Any]] = Field(default_factory=list, sa_type=JSON)
    price_lock_date: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    author_id: str = Field(foreign_key="users.id", index=True, max_length=32)

    views: int = Field(default=0)
    booking_count: int = Field(default=0)
    average_rating: float = Field(default=0.0, index=True)
    review_count: int = Field(default=0)
    approved_review_count: int = Field(default=0)

    created_at: datetime = Field(default_factory=utc_now, index=True, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now}, sa_type=UTCDateTime
    )

    def __repr__(self) -> str:
        return f"Tour(id={self.id}, code={self.code}, status={self.tour_status})"
