"""
Tour booking entity models.

Participant counts, pricing and contact details are stored as JSON documents
so they round-trip exactly as the booking form submitted them.
"""

from __future__ import annotations

import secrets
from datetime import datetime
from typing import Any, Dict, Optional

from sqlmodel import JSON, Field

from ..base import Base, UTCDateTime, new_id, utc_now

BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "completed")
PAYMENT_STATUSES = ("pending", "paid", "refunded", "failed")


def new_booking_reference() -> str:
    """Human friendly booking reference, e.g. ``TB-9F2C61AB``."""
    return f"TB-{secrets.token_hex(4).upper()}"


class Booking(Base, table=True):
    """Persistent tour booking.

    Table: bookings
    """

    __tablename__ = "bookings"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    booking_reference: str = Field(default_factory=new_booking_reference, index=True, unique=True, max_length=16)

    tour_id: str = Field(index=True, max_length=64)
    tour_title: str
    tour_code: Optional[str] = Field(default=None)
    tour_owner_id: Optional[str] = Field(default=None, foreign_key="users.id", index=True, max_length=32)
    departure_date: datetime = Field(index=True, sa_type=UTCDateTime)

    participants: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    pricing: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    contact_info: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    total_price: float = Field(default=0.0, index=True)
    currency: str = Field(default="USD", max_length=8)
    special_requests: Optional[str] = Field(default=None)

    user_id: Optional[str] = Field(default=None, foreign_key="users.id", index=True, max_length=32)

    status: str = Field(default="pending", index=True)
    payment_status: str = Field(default="pending", index=True)
    paid_amount: float = Field(default=0.0)
    transaction_id: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)
    cancellation_reason: Optional[str] = Field(default=None)
    cancelled_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    created_at: datetime = Field(default_factory=utc_now, index=True, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now}, sa_type=UTCDateTime
    )

    @property
    def participant_count(self) -> int:
        return sum(int(self.participants.get(key) or 0) for key in ("adults", "children", "infants"))

    def __repr__(self) -> str:
        return f"Booking(reference={self.booking_reference}, status={self.status}, payment={self.payment_status})"
