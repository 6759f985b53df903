"""
Tour fact entity models.

Facts are reusable attribute definitions ("Duration", "Difficulty", ...)
owned by a seller. Tours copy a fact into their ``facts`` list together with
the tour specific value and keep its id as ``factId``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from sqlmodel import JSON, Field

from ..base import Base, UTCDateTime, new_id, utc_now


class Fact(Base, table=True):
    """Persistent fact definition.

    Table: facts
    """

    __tablename__ = "facts"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    name: str = Field(description="Label shown on the tour page")
    field_type: str = Field(default="Plain Text", description="Input type used by the tour editor")
    value: List[Any] = Field(default_factory=list, sa_type=JSON, description="Selectable options")
    icon: Optional[str] = Field(default=None)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=32)

    created_at: datetime = Field(default_factory=utc_now, index=True, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now}, sa_type=UTCDateTime
    )
