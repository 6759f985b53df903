"""
In-app notification entity models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, UTCDateTime, new_id, utc_now


class Notification(Base, table=True):
    """Table: notifications"""

    __tablename__ = "notifications"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    recipient_id: str = Field(foreign_key="users.id", index=True, max_length=32)
    sender_id: Optional[str] = Field(default=None, foreign_key="users.id", max_length=32)
    type: str = Field(index=True, description="booking, review or reply")
    title: str
    message: str
    link: Optional[str] = Field(default=None)
    is_read: bool = Field(default=False, index=True)
    read_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    created_at: datetime = Field(default_factory=utc_now, index=True, sa_type=UTCDateTime)
