"""
Account lifecycle: registration, login, email verification and password reset.

Shared by the ``/auth`` routes and their ``/users`` mirrors.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict

from fastapi import Response
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.base import as_utc, utc_now
from tourbnt.core.database.entities.users import User
from tourbnt.core.database.repositories import UserRepository
from tourbnt.core.errors import ApiError, bad_request, not_found
from tourbnt.core.logging_config import get_logger
from tourbnt.core.models.io import LoginRequest, RegisterRequest, ResetPasswordRequest
from tourbnt.core.security import (
    EMAIL_VERIFICATION,
    PASSWORD_RESET,
    TokenError,
    create_purpose_token,
    decode_token,
    hash_password,
    verify_password,
)
from tourbnt.server.core.config import settings

from .auth import clear_auth_cookies, set_auth_cookies
from .mailer import MailDeliveryError, send_reset_password_email, send_verification_email

logger = get_logger(__name__)


async def register_user(session: AsyncSession, payload: RegisterRequest) -> Dict[str, Any]:
    """Create an account; returns ``{"user": {...}, "message": ...}``."""
    users = UserRepository(session)
    if await users.get_by_email(payload.email):
        raise bad_request("User already exists with this email.")

    user = await users.create(
        User(
            name=payload.name.strip(),
            email=payload.email,
            password=hash_password(payload.password),
            verified=settings.is_development,
        )
    )
    summary = {"id": user.id, "email": user.email}

    if settings.is_development:
        logger.info(f"Registered {user.email} (auto-verified in development)")
        return {"user": summary, "message": "User created successfully (auto-verified in development mode)"}

    token = create_purpose_token(user.id, EMAIL_VERIFICATION)
    user.verification_token = token
    await users.update(user)
    try:
        await send_verification_email(user.email, user.name, token)
    except MailDeliveryError as e:
        logger.warning(f"Verification mail for {user.email} not sent: {e}")
        return {
            "user": summary,
            "message": "User created successfully but verification email could not be sent. Please contact support.",
        }
    return {"user": summary, "message": "Verification email sent. Please check your inbox."}


async def login_user(session: AsyncSession, payload: LoginRequest, response: Response) -> Dict[str, Any]:
    user = await UserRepository(session).get_by_email(payload.email)
    if user is None:
        raise not_found("User not found")
    if not verify_password(payload.password, user.password):
        raise bad_request("Invalid credentials")
    set_auth_cookies(response, user, payload.keep_me_signed_in)
    logger.info(f"User {user.id} logged in (keep_me_signed_in={payload.keep_me_signed_in})")
    return {"user": {"id": user.id, "roles": user.role_list, "email": user.email}}


def logout_user(response: Response) -> None:
    clear_auth_cookies(response)


async def verify_email(session: AsyncSession, token: str) -> User:
    try:
        claims = decode_token(token, purpose=EMAIL_VERIFICATION)
    except TokenError as e:
        raise bad_request("Invalid or expired verification token") from e
    users = UserRepository(session)
    user = await users.get_by_id(claims["sub"])
    if user is None:
        raise bad_request("Invalid or expired verification token")
    if user.verification_token and user.verification_token != token:
        raise bad_request("Invalid or expired verification token")
    user.verified = True
    user.verification_token = None
    return await users.update(user)


async def forgot_password(session: AsyncSession, email: str) -> Dict[str, Any]:
    users = UserRepository(session)
    user = await users.get_by_email(email)
    if user is None:
        raise not_found("User not found")

    lifetime = timedelta(minutes=settings.jwt_purpose_token_minutes)
    token = create_purpose_token(user.id, PASSWORD_RESET, lifetime)
    user.reset_password_token = token
    user.reset_password_expires = utc_now() + lifetime
    await users.update(user)

    if settings.is_development:
        return {"message": "Password reset token generated (development mode)", "resetToken": token}
    try:
        await send_reset_password_email(user.email, user.name, token)
    except MailDeliveryError as e:
        logger.warning(f"Reset mail for {user.email} not sent: {e}")
        return {"message": "Password reset initiated but email could not be sent. Please contact support."}
    return {"message": "Password reset email sent. Please check your inbox."}


async def reset_password(session: AsyncSession, payload: ResetPasswordRequest) -> User:
    invalid = ApiError(400, "Invalid or expired reset token")
    try:
        decode_token(payload.token, purpose=PASSWORD_RESET)
    except TokenError as e:
        raise invalid from e
    users = UserRepository(session)
    user = await users.get_by_reset_token(payload.token)
    if user is None or user.reset_password_expires is None or as_utc(user.reset_password_expires) < utc_now():
        raise invalid
    user.password = hash_password(payload.password)
    user.reset_password_token = None
    user.reset_password_expires = None
    return await users.update(user)
