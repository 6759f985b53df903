"""
FAQ and subscriber I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel


class FaqCreate(CamelModel):
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)


class FaqUpdate(CamelModel):
    question: Optional[str] = None
    answer: Optional[str] = None


class FaqRead(CamelModel):
    id: str
    question: str
    answer: str
    user_id: str
    created_at: datetime
    updated_at: datetime


class SubscriberCreate(CamelModel):
    email: str = Field(description="Address to subscribe; trimmed and lowercased")


class SubscriberRead(CamelModel):
    id: str
    email: str
    subscribed_at: datetime
