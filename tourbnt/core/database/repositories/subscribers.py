"""
Subscriber repository.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.subscribers import Subscriber
from .base import QueryBuilder, SQLModelRepository


class SubscriberRepository(SQLModelRepository[Subscriber]):
    """Repository for newsletter subscriptions."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Subscriber)

    async def get_by_email(self, email: str) -> Optional[Subscriber]:
        result = await self.session.execute(select(Subscriber).where(Subscriber.email == email))
        return result.scalar_one_or_none()

    def build_list_query(self, sort_order: str = "desc"):
        return QueryBuilder.apply_sort(select(Subscriber), Subscriber, "subscribed_at", sort_order)

    async def delete_by_email(self, email: str) -> bool:
        subscriber = await self.get_by_email(email)
        if subscriber is None:
            return False
        await self.session.delete(subscriber)
        await self.session.commit()
        return True
