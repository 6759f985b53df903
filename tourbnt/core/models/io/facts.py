"""
Fact and notification I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field

from .common import CamelModel, UserSummary


class FactCreate(CamelModel):
    name: str = Field(min_length=1)
    field_type: str = "Plain Text"
    value: List[Any] = Field(default_factory=list)
    icon: Optional[str] = None


class FactUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    field_type: Optional[str] = None
    value: Optional[List[Any]] = None
    icon: Optional[str] = None


class FactRead(CamelModel):
    id: str
    name: str
    field_type: str
    value: List[Any] = Field(default_factory=list)
    icon: Optional[str] = None
    user_id: str
    created_at: datetime
    updated_at: datetime


class NotificationRead(CamelModel):
    id: str
    recipient_id: str
    sender_id: Optional[str] = None
    sender: Optional[UserSummary] = None
    type: str
    title: str
    message: str
    link: Optional[str] = None
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime
