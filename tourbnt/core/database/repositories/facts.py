"""
Fact repository.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.facts import Fact
from .base import QueryBuilder, SQLModelRepository


class FactRepository(SQLModelRepository[Fact]):
    """Repository for fact data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Fact)

    def build_list_query(self, user_id: Optional[str] = None, sort_by: str = "created_at", sort_order: str = "desc"):
        stmt = select(Fact)
        if user_id is not None:
            stmt = stmt.where(Fact.user_id == user_id)
        return QueryBuilder.apply_sort(stmt, Fact, sort_by, sort_order)
