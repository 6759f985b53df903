"""
Request authentication.

The session token travels in the httpOnly ``token`` cookie; an
``Authorization: Bearer`` header is accepted as a fallback for API clients.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Callable, Optional

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database import get_session
from tourbnt.core.database.entities.users import User
from tourbnt.core.database.repositories import UserRepository
from tourbnt.core.errors import ApiError, forbidden, unauthorized
from tourbnt.core.logging_config import get_logger
from tourbnt.core.roles import has_any_role, is_admin
from tourbnt.core.security import (
    TokenError,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    session_lifetime,
)
from tourbnt.server.core.config import settings

logger = get_logger(__name__)

ACCESS_COOKIE = "token"
REFRESH_COOKIE = "refreshToken"


def _read_token(request: Request) -> Optional[str]:
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


async def _resolve_user(request: Request, session: AsyncSession) -> User:
    token = _read_token(request)
    if not token:
        raise unauthorized()
    try:
        claims = decode_access_token(token)
    except TokenError as e:
        logger.debug(f"Rejected token on {request.url.path}: {e}")
        raise unauthorized("Invalid or expired token") from e
    user = await UserRepository(session).get_by_id(claims["sub"])
    if user is None:
        raise unauthorized("User no longer exists")
    request.state.user_id = user.id
    return user


async def get_current_user(request: Request, session: AsyncSession = Depends(get_session)) -> User:
    """Dependency returning the authenticated user or answering 401."""
    return await _resolve_user(request, session)


async def get_optional_user(request: Request, session: AsyncSession = Depends(get_session)) -> Optional[User]:
    """Like ``get_current_user`` but yields ``None`` for anonymous or invalid sessions."""
    try:
        return await _resolve_user(request, session)
    except ApiError:
        return None


def require_roles(*roles: str) -> Callable:
    """Build a dependency that admits only users holding one of ``roles``."""

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if not has_any_role(user.roles, roles):
            raise forbidden(f"Access denied. Required roles: {', '.join(roles)}")
        return user

    return dependency


def ensure_owner_or_admin(user: User, owner_id: Optional[str], message: str = "Access denied") -> None:
    if is_admin(user.roles) or (owner_id is not None and user.id == owner_id):
        return
    raise forbidden(message)


def set_auth_cookies(response: Response, user: User, keep_me_signed_in: bool = False) -> None:
    lifetime: timedelta = session_lifetime(keep_me_signed_in)
    max_age = int(lifetime.total_seconds())
    cookie_options = dict(
        httponly=True,
        secure=settings.is_production,
        samesite="strict" if settings.is_production else "lax",
        path="/",
        max_age=max_age,
    )
    response.set_cookie(ACCESS_COOKIE, create_access_token(user.id, user.roles, keep_me_signed_in), **cookie_options)
    response.set_cookie(REFRESH_COOKIE, create_refresh_token(user.id, keep_me_signed_in), **cookie_options)


def clear_auth_cookies(response: Response) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            name,
            path="/",
            httponly=True,
            secure=settings.is_production,
            samesite="strict" if settings.is_production else "lax",
        )
