"""
Destination and category I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel


class CatalogItemFields(CamelModel):
    description: Optional[str] = None
    cover_image: Optional[str] = None
    is_active: bool = True


class CatalogItemRead(CatalogItemFields):
    id: str
    name: str
    approval_status: str
    rejection_reason: Optional[str] = None
    submitted_by: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    is_favorite: Optional[bool] = None
    is_in_list: Optional[bool] = None


class DestinationCreate(CatalogItemFields):
    name: str = Field(min_length=1)
    country: str = Field(min_length=1)
    region: Optional[str] = None
    city: Optional[str] = None


class DestinationUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    cover_image: Optional[str] = None
    is_active: Optional[bool] = None
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None


class DestinationRead(CatalogItemRead):
    country: str
    region: Optional[str] = None
    city: Optional[str] = None


class CategoryCreate(CatalogItemFields):
    name: str = Field(min_length=1)
    type: Optional[str] = None


class CategoryUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    cover_image: Optional[str] = None
    is_active: Optional[bool] = None
    type: Optional[str] = None


class CategoryRead(CatalogItemRead):
    type: Optional[str] = None


class FavoriteRead(CamelModel):
    is_favorite: bool
