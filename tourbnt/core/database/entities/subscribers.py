"""
Newsletter subscriber entity.
"""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field

from ..base import Base, UTCDateTime, new_id, utc_now


class Subscriber(Base, table=True):
    """Table: subscribers"""

    __tablename__ = "subscribers"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    email: str = Field(index=True, unique=True, max_length=320)
    subscribed_at: datetime = Field(default_factory=utc_now, index=True, sa_type=UTCDateTime)
