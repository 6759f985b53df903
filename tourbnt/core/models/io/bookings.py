"""
Booking I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from .common import CamelModel


class Participants(CamelModel):
    adults: int = Field(default=1, ge=0)
    children: int = Field(default=0, ge=0)
    infants: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.adults + self.children + self.infants


class ContactInfo(CamelModel):
    full_name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: Optional[str] = None
    country: Optional[str] = None


class BookingCreate(CamelModel):
    tour_id: str = Field(min_length=1, description="Tour to book; title, code and owner are taken from it")
    departure_date: datetime
    participants: Participants
    pricing: Dict[str, Any] = Field(default_factory=dict)
    total_price: float
    currency: str = "USD"
    contact_info: ContactInfo
    special_requests: Optional[str] = None

    @field_validator("participants")
    @classmethod
    def require_adult(cls, value: Participants) -> Participants:
        if value.adults < 1:
            raise ValueError("At least one adult is required")
        return value

    @field_validator("total_price")
    @classmethod
    def require_positive_total(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Total price must be greater than 0")
        return value


class BookingRead(CamelModel):
    id: str
    booking_reference: str
    tour_id: str
    tour_title: str
    tour_code: Optional[str] = None
    tour_owner_id: Optional[str] = None
    departure_date: datetime
    participants: Dict[str, Any]
    pricing: Dict[str, Any]
    total_price: float
    currency: str
    contact_info: Dict[str, Any]
    special_requests: Optional[str] = None
    user_id: Optional[str] = None
    status: str
    payment_status: str
    paid_amount: float = 0.0
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class BookingStatusUpdate(CamelModel):
    status: str
    notes: Optional[str] = None


class PaymentUpdate(CamelModel):
    payment_status: str
    paid_amount: Optional[float] = Field(default=None, ge=0)
    transaction_id: Optional[str] = None


class VoucherRead(CamelModel):
    booking_reference: str
    tour_title: str
    tour_code: Optional[str] = None
    departure_date: datetime
    lead_traveller: str
    email: str
    participants: Dict[str, Any]
    total_participants: int
    total_price: float
    currency: str
    payment_status: str
    issued_at: datetime
