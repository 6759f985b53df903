"""
User, authentication and seller application I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from .common import CamelModel


class RegisterRequest(CamelModel):
    name: str = Field(min_length=1, description="Display name")
    email: str = Field(min_length=3, description="Login email")
    password: str = Field(min_length=1, description="Plain text password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class LoginRequest(CamelModel):
    email: str
    password: str
    keep_me_signed_in: bool = Field(default=False, description="Issue a long lived session")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class EmailRequest(CamelModel):
    email: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class TokenRequest(CamelModel):
    token: str


class ResetPasswordRequest(CamelModel):
    token: str
    password: str = Field(min_length=1)


class UserRead(CamelModel):
    """Public view of a user; never includes the password hash or tokens."""

    id: str
    name: str
    email: str
    roles: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    verified: bool = False
    seller_info: Optional[Dict[str, Any]] = None
    seller_status: str = "none"
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None


class UserUpdate(ProfileUpdate):
    """Owner or admin update; ``roles`` is honoured for admins only."""

    roles: Optional[str] = None


class PasswordChange(CamelModel):
    current_password: str
    new_password: str = Field(min_length=1)


class RoleUpdate(CamelModel):
    role: str


class SellerApplication(CamelModel):
    company_name: str = Field(min_length=1)
    company_registration_number: str = Field(min_length=1)
    seller_type: str = Field(min_length=1, description="Operator type, e.g. 'tour operator' or 'guide'")
    business_address: Optional[Dict[str, Any]] = None
    bank_details: Optional[Dict[str, Any]] = None
    website: Optional[str] = None
    description: Optional[str] = None


class SellerStatusUpdate(CamelModel):
    status: str
    reason: Optional[str] = None


class UserSettingsRead(CamelModel):
    """Stored integration settings with every secret masked."""

    cloudinary_cloud: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    openai_api_key: Optional[str] = None
    google_api_key: Optional[str] = None


class UserSettingsUpdate(UserSettingsRead):
    pass


class SettingKeyRead(CamelModel):
    key_type: str
    value: Optional[str] = None
