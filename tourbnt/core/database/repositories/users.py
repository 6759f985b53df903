"""
User repository.

Covers account lookup, the admin user listing and seller application queries.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.user_settings import UserSetting
from ..entities.users import User
from .base import QueryBuilder, SQLModelRepository


class UserRepository(SQLModelRepository[User]):
    """Repository for user account data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Look a user up by email, case-insensitively."""
        stmt = select(User).where(User.email == email.strip().lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_reset_token(self, token: str) -> Optional[User]:
        stmt = select(User).where(User.reset_password_token == token)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def build_list_query(
        self,
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ):
        """Statement behind the admin user list.

        Args:
            filters: Equality filters, e.g. ``roles`` or ``seller_status``
            search: Case-insensitive match on name or email
            sort_by: Column to order by
            sort_order: ``asc`` or ``desc``
        """
        stmt = select(User)
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, User, filters)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        return QueryBuilder.apply_sort(stmt, User, sort_by, sort_order)

    async def list_seller_applications(self) -> List[User]:
        """Users with a seller application that has not been approved yet."""
        stmt = (
            select(User)
            .where(User.seller_status.in_(["pending", "rejected"]))
            .order_by(User.updated_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class UserSettingRepository(SQLModelRepository[UserSetting]):
    """Repository for per-user integration credentials."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, UserSetting)

    async def get_for_user(self, user_id: str) -> Optional[UserSetting]:
        stmt = select(UserSetting).where(UserSetting.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
