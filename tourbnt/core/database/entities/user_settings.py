"""
Per-user third party credentials.

Secrets are stored encrypted; see ``tourbnt.core.security.encrypt_secret``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, UTCDateTime, new_id, utc_now


class UserSetting(Base, table=True):
    """Stored integration keys for a single user.

    Table: user_settings
    """

    __tablename__ = "user_settings"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    user_id: str = Field(foreign_key="users.id", index=True, unique=True, max_length=32)

    cloudinary_cloud: Optional[str] = Field(default=None, description="Cloudinary cloud name")
    cloudinary_api_key: Optional[str] = Field(default=None, description="Encrypted Cloudinary API key")
    cloudinary_api_secret: Optional[str] = Field(default=None, description="Encrypted Cloudinary API secret")
    openai_api_key: Optional[str] = Field(default=None, description="Encrypted OpenAI API key")
    google_api_key: Optional[str] = Field(default=None, description="Encrypted Google API key")

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now}, sa_type=UTCDateTime
    )
