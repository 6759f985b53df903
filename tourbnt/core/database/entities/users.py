"""
User entity models.

A user owns posts, FAQs, bookings and a gallery. Seller applications live
on the user record itself as a JSON ``seller_info`` document.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import JSON, Field

from ..base import Base, UTCDateTime, new_id, utc_now


class UserBase(Base):
    """Base fields for a user account."""

    name: str = Field(description="Display name")
    email: str = Field(index=True, unique=True, max_length=320, description="Login email, stored lowercased")
    roles: str = Field(default="user", description="Primary role (admin, seller, user, ...)")
    phone: Optional[str] = Field(default=None, description="Contact phone number")
    avatar: Optional[str] = Field(default=None, description="Avatar image URL")
    verified: bool = Field(default=False, description="Whether the email address was verified")


class User(UserBase, table=True):
    """Persistent user account.

    Table: users
    """

    __tablename__ = "users"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    password: str = Field(description="bcrypt password hash")

    verification_token: Optional[str] = Field(default=None)
    reset_password_token: Optional[str] = Field(default=None)
    reset_password_expires: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    seller_info: Optional[Dict[str, Any]] = Field(default=None, sa_type=JSON)
    seller_status: str = Field(default="none", index=True, description="none, pending, approved or rejected")

    created_at: datetime = Field(default_factory=utc_now, index=True, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now}, sa_type=UTCDateTime
    )

    @property
    def role_list(self) -> List[str]:
        return [self.roles] if self.roles else []

    def set_seller_info(self, seller_info: Optional[Dict[str, Any]]) -> None:
        """Replace ``seller_info`` and recompute ``seller_status`` from it.

        The JSON column is reassigned rather than mutated in place so the
        change is picked up by the unit of work.
        """
        self.seller_info = dict(seller_info) if seller_info is not None else None
        self.seller_status = self._derive_seller_status()

    def _derive_seller_status(self) -> str:
        if not self.seller_info:
            return "none"
        if self.seller_info.get("isApproved"):
            return "approved"
        if self.seller_info.get("rejectionReason"):
            return "rejected"
        return "pending"

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email}, roles={self.roles})"
