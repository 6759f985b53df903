"""
Seller application lifecycle.

A user applies (``seller_info`` stored with ``isApproved=False``), an admin
approves (role becomes ``seller``) or rejects (``rejectionReason`` set). A
rejected or pending applicant may apply again; an approved seller may not.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.base import utc_now
from tourbnt.core.database.entities.users import User
from tourbnt.core.database.repositories import UserRepository
from tourbnt.core.errors import bad_request
from tourbnt.core.logging_config import get_logger
from tourbnt.core.models.io import SellerApplication
from tourbnt.core.roles import Role

logger = get_logger(__name__)


async def apply(session: AsyncSession, user: User, application: SellerApplication) -> User:
    previous: Dict[str, Any] = dict(user.seller_info or {})
    if previous.get("isApproved"):
        raise bad_request("You already have an approved seller account.")

    seller_info = application.model_dump(by_alias=True, exclude_none=True)
    seller_info.update(
        isApproved=False,
        appliedAt=utc_now().isoformat(),
        reapplicationCount=int(previous.get("reapplicationCount") or 0) + 1,
    )
    user.set_seller_info(seller_info)
    logger.info(f"Seller application submitted by {user.id} (attempt {seller_info['reapplicationCount']})")
    return await UserRepository(session).update(user)


async def approve(session: AsyncSession, user: User) -> User:
    if not user.seller_info:
        raise bad_request("User has not submitted a seller application")
    if user.seller_info.get("isApproved"):
        raise bad_request("Seller application already approved")
    seller_info = dict(user.seller_info, isApproved=True, approvedAt=utc_now().isoformat())
    seller_info.pop("rejectionReason", None)
    seller_info.pop("rejectedAt", None)
    user.set_seller_info(seller_info)
    user.roles = Role.SELLER.value
    logger.info(f"Seller application of {user.id} approved")
    return await UserRepository(session).update(user)


async def reject(session: AsyncSession, user: User, reason: Optional[str]) -> User:
    if not user.seller_info:
        raise bad_request("User has not submitted a seller application")
    seller_info = dict(
        user.seller_info,
        isApproved=False,
        rejectionReason=reason or "No reason provided",
        rejectedAt=utc_now().isoformat(),
    )
    user.set_seller_info(seller_info)
    logger.info(f"Seller application of {user.id} rejected")
    return await UserRepository(session).update(user)


async def delete_application(session: AsyncSession, user: User) -> User:
    if not user.seller_info:
        raise bad_request("User is not a seller applicant")
    user.set_seller_info(None)
    user.roles = Role.USER.value
    logger.info(f"Seller application of {user.id} deleted, role reset to user")
    return await UserRepository(session).update(user)
