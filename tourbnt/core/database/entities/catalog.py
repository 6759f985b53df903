"""
Destination and category entity models.

Destinations and categories are global catalog items. Admins create them
directly; sellers submit them for approval. Each seller keeps a personal
list of catalog items and may mark some as favorites, which is stored in
``seller_catalog_preferences``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from ..base import Base, UTCDateTime, new_id, utc_now


class CatalogItemBase(Base):
    """Fields shared by every catalog item."""

    name: str = Field(description="Display name")
    description: Optional[str] = Field(default=None, description="Long description")
    cover_image: Optional[str] = Field(default=None, description="Cover image URL")
    is_active: bool = Field(default=True, description="Whether the item is offered")


class CatalogItemRecord(CatalogItemBase):
    """Moderation and audit columns shared by the catalog tables."""

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    approval_status: str = Field(default="pending", index=True, description="pending, approved or rejected")
    rejection_reason: Optional[str] = Field(default=None)
    submitted_by: Optional[str] = Field(default=None, foreign_key="users.id", index=True, max_length=32)
    approved_by: Optional[str] = Field(default=None, foreign_key="users.id", max_length=32)
    approved_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    created_at: datetime = Field(default_factory=utc_now, index=True, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now}, sa_type=UTCDateTime
    )


class Destination(CatalogItemRecord, table=True):
    """Table: destinations"""

    __tablename__ = "destinations"
    __table_args__ = ({"extend_existing": True},)

    country: str = Field(index=True, description="Country the destination is in")
    region: Optional[str] = Field(default=None)
    city: Optional[str] = Field(default=None)


class Category(CatalogItemRecord, table=True):
    """Table: categories"""

    __tablename__ = "categories"
    __table_args__ = ({"extend_existing": True},)

    type: Optional[str] = Field(default=None, index=True, description="Grouping such as 'activity' or 'theme'")


class SellerCatalogPreference(Base, table=True):
    """A seller's list membership and favorite flag for one catalog item.

    Table: seller_catalog_preferences
    """

    __tablename__ = "seller_catalog_preferences"
    __table_args__ = (
        UniqueConstraint("user_id", "item_type", "item_id", name="uq_seller_catalog_preference"),
        {"extend_existing": True},
    )

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=32)
    item_type: str = Field(description="'destination' or 'category'", max_length=16)
    item_id: str = Field(index=True, max_length=32)
    is_favorite: bool = Field(default=False)
    is_in_list: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
