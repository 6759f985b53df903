"""
Tour and review I/O models.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from .common import CamelModel, UserSummary
from .posts import Breadcrumb

TOUR_STATUS_PATTERN = "^(Draft|Published)$"


def _check_title(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value.strip()) < 3:
        raise ValueError("Title must be at least 3 characters long")
    return value


def _check_description(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value.strip()) < 10:
        raise ValueError("Description must be at least 10 characters long")
    return value


class TourFact(CamelModel):
    """A fact as attached to one tour, with the tour's own value."""

    fact_id: Optional[str] = Field(default=None, description="Fact definition this entry was copied from")
    title: str
    value: Any = None
    icon: Optional[str] = None
    field_type: Optional[str] = None


class TourCreate(CamelModel):
    title: str
    description: str
    excerpt: Optional[str] = None
    outline: Optional[str] = None
    code: Optional[str] = Field(default=None, description="Generated when omitted")
    price: float = Field(default=0.0, ge=0)
    discount_enabled: bool = False
    discount_price: Optional[float] = Field(default=None, ge=0)
    is_special_offer: bool = False
    tour_status: str = Field(default="Draft", pattern=TOUR_STATUS_PATTERN)
    category_ids: List[str] = Field(default_factory=list)
    destination_id: Optional[str] = None
    cover_image: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    facts: List[TourFact] = Field(default_factory=list)
    max_group_size: Optional[int] = Field(default=None, ge=1)
    price_lock_date: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def title_length(cls, value: str) -> str:
        return _check_title(value)

    @field_validator("description")
    @classmethod
    def description_length(cls, value: str) -> str:
        return _check_description(value)


class TourUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    excerpt: Optional[str] = None
    outline: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    discount_enabled: Optional[bool] = None
    discount_price: Optional[float] = Field(default=None, ge=0)
    is_special_offer: Optional[bool] = None
    tour_status: Optional[str] = Field(default=None, pattern=TOUR_STATUS_PATTERN)
    category_ids: Optional[List[str]] = None
    destination_id: Optional[str] = None
    cover_image: Optional[str] = None
    images: Optional[List[str]] = None
    facts: Optional[List[TourFact]] = None
    max_group_size: Optional[int] = Field(default=None, ge=1)
    price_lock_date: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def title_length(cls, value: Optional[str]) -> Optional[str]:
        return _check_title(value)

    @field_validator("description")
    @classmethod
    def description_length(cls, value: Optional[str]) -> Optional[str]:
        return _check_description(value)


class TourRead(CamelModel):
    id: str
    code: str
    title: str
    description: str
    excerpt: Optional[str] = None
    outline: Optional[str] = None
    price: float
    discount_enabled: bool = False
    discount_price: Optional[float] = None
    is_special_offer: bool = False
    tour_status: str
    category_ids: List[str] = Field(default_factory=list)
    destination_id: Optional[str] = None
    cover_image: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    facts: List[Dict[str, Any]] = Field(default_factory=list)
    max_group_size: Optional[int] = None
    price_lock_date: Optional[datetime] = None
    author_id: str
    author: Optional[UserSummary] = None
    views: int = 0
    booking_count: int = 0
    average_rating: float = 0.0
    review_count: int = 0
    approved_review_count: int = 0
    created_at: datetime
    updated_at: datetime


class TourDetail(CamelModel):
    tour: TourRead
    breadcrumbs: List[Breadcrumb]


class Availability(CamelModel):
    date: str
    available: bool
    available_seats: Optional[int] = Field(default=None, description="None when the tour has no seat limit")
    total_capacity: Optional[int] = None
    booked_seats: int = 0


# =====================================================================
# Reviews
# =====================================================================


class ReviewCreate(CamelModel):
    rating: float
    comment: Optional[str] = None

    @field_validator("rating")
    @classmethod
    def half_star_rating(cls, value: float) -> float:
        if value < 0.5 or value > 5:
            raise ValueError("Rating must be between 0.5 and 5")
        # half up, so 4.25 becomes 4.5
        return math.floor(value * 2 + 0.5) / 2


class ReviewStatusUpdate(CamelModel):
    status: str


class ReplyCreate(CamelModel):
    comment: Optional[str] = None


class ReviewRead(CamelModel):
    id: str
    tour_id: str
    user_id: str
    user: Optional[UserSummary] = None
    rating: float
    comment: Optional[str] = None
    status: str
    likes: int = 0
    views: int = 0
    replies: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class RatingRead(CamelModel):
    average_rating: float
    number_of_reviews: int
