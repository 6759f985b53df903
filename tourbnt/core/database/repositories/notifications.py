"""
Notification repository.
"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.notifications import Notification
from .base import SQLModelRepository


class NotificationRepository(SQLModelRepository[Notification]):
    """Repository for notification data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Notification)

    def build_list_query(self, recipient_id: str, unread_only: bool = False):
        stmt = select(Notification).where(Notification.recipient_id == recipient_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        return stmt.order_by(Notification.created_at.desc())

    async def unread_count(self, recipient_id: str) -> int:
        stmt = select(func.count()).select_from(Notification).where(
            Notification.recipient_id == recipient_id, Notification.is_read.is_(False)
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())
