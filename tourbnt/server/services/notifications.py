"""
In-app notifications for tour owners and reviewers.

A notification is a side effect of the request that triggers it: failing to
store one is logged and never fails that request.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.entities.notifications import Notification
from tourbnt.core.database.repositories import NotificationRepository
from tourbnt.core.logging_config import get_logger

logger = get_logger(__name__)


async def notify(
    session: AsyncSession,
    recipient_id: Optional[str],
    type: str,
    title: str,
    message: str,
    link: Optional[str] = None,
    sender_id: Optional[str] = None,
) -> Optional[Notification]:
    """Store a notification for ``recipient_id``; nobody is notified about their own actions."""
    if not recipient_id or recipient_id == sender_id:
        return None
    notification = Notification(
        recipient_id=recipient_id, sender_id=sender_id, type=type, title=title, message=message, link=link
    )
    try:
        return await NotificationRepository(session).create(notification)
    except SQLAlchemyError as e:
        logger.warning(f"Failed to store {type} notification for {recipient_id}: {e}")
        await session.rollback()
        return None
