"""
FAQ entity models.
"""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field

from ..base import Base, UTCDateTime, new_id, utc_now


class FaqBase(Base):
    """Base fields for a question and answer pair."""

    question: str = Field(description="The question as shown to travellers")
    answer: str = Field(description="The answer")


class Faq(FaqBase, table=True):
    """Persistent FAQ owned by a seller or admin.

    Table: faqs
    """

    __tablename__ = "faqs"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=32)

    created_at: datetime = Field(default_factory=utc_now, index=True, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now}, sa_type=UTCDateTime
    )
