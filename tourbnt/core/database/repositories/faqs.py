"""
FAQ repository.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.faqs import Faq
from .base import QueryBuilder, SQLModelRepository


class FaqRepository(SQLModelRepository[Faq]):
    """Repository for FAQ data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Faq)

    def build_list_query(self, user_id: Optional[str] = None, sort_by: str = "created_at", sort_order: str = "desc"):
        stmt = select(Faq)
        if user_id is not None:
            stmt = stmt.where(Faq.user_id == user_id)
        return QueryBuilder.apply_sort(stmt, Faq, sort_by, sort_order)
