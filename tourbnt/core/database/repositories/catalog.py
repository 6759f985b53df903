"""
Catalog repositories for destinations and categories.

Both catalog tables share the same moderation workflow, so a single
repository class is parameterised by the entity type.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Type, Union

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..base import utc_now
from ..entities.catalog import Category, Destination, SellerCatalogPreference
from .base import QueryBuilder, SQLModelRepository

CatalogEntity = Union[Destination, Category]

ITEM_TYPES = {Destination: "destination", Category: "category"}


class CatalogRepository(SQLModelRepository[CatalogEntity]):
    """Repository for one catalog table plus the seller preferences pointing at it."""

    def __init__(self, session: AsyncSession, model: Type[CatalogEntity]) -> None:
        super().__init__(session, model)
        self.item_type = ITEM_TYPES[model]

    def build_list_query(
        self,
        approval_status: Optional[str] = "approved",
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ):
        """Catalog listing; ``approval_status=None`` lists every state."""
        stmt = select(self.model)
        if approval_status is not None:
            stmt = stmt.where(self.model.approval_status == approval_status)
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, self.model, filters)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(self.model.name.ilike(pattern), self.model.description.ilike(pattern)))
        return QueryBuilder.apply_sort(stmt, self.model, sort_by, sort_order)

    async def list_by_column(self, column: str, value: str) -> List[CatalogEntity]:
        """Approved items whose ``column`` equals ``value`` ignoring case."""
        stmt = (
            select(self.model)
            .where(func.lower(getattr(self.model, column)) == value.strip().lower())
            .where(self.model.approval_status == "approved")
            .order_by(self.model.name.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_visible_to(self, user_id: str) -> List[CatalogEntity]:
        """Approved items plus anything ``user_id`` submitted themselves."""
        stmt = (
            select(self.model)
            .where(or_(self.model.approval_status == "approved", self.model.submitted_by == user_id))
            .order_by(self.model.name.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_approval(
        self, item: CatalogEntity, status: str, reviewer_id: Optional[str], reason: Optional[str] = None
    ) -> CatalogEntity:
        changes: Dict[str, Any] = {"approval_status": status, "rejection_reason": reason}
        if status == "approved":
            changes.update(approved_by=reviewer_id, approved_at=utc_now(), rejection_reason=None)
        return await self.apply_changes(item, changes)

    # ------------------------------------------------------------------
    # Seller preferences
    # ------------------------------------------------------------------

    async def get_preference(self, user_id: str, item_id: str) -> Optional[SellerCatalogPreference]:
        stmt = select(SellerCatalogPreference).where(
            SellerCatalogPreference.user_id == user_id,
            SellerCatalogPreference.item_type == self.item_type,
            SellerCatalogPreference.item_id == item_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_preference(self, user_id: str, item_id: str, **changes: Any) -> SellerCatalogPreference:
        preference = await self.get_preference(user_id, item_id)
        if preference is None:
            preference = SellerCatalogPreference(
                user_id=user_id, item_type=self.item_type, item_id=item_id, is_in_list=False
            )
        for key, value in changes.items():
            setattr(preference, key, value)
        self.session.add(preference)
        await self.session.commit()
        await self.session.refresh(preference)
        return preference

    async def preferences_for(self, user_id: str) -> Dict[str, SellerCatalogPreference]:
        """All of ``user_id``'s preferences for this item type, keyed by item id."""
        stmt = select(SellerCatalogPreference).where(
            SellerCatalogPreference.user_id == user_id,
            SellerCatalogPreference.item_type == self.item_type,
        )
        result = await self.session.execute(stmt)
        return {preference.item_id: preference for preference in result.scalars().all()}

    async def list_favorites(self, user_id: str) -> List[CatalogEntity]:
        favorite_ids = select(SellerCatalogPreference.item_id).where(
            SellerCatalogPreference.user_id == user_id,
            SellerCatalogPreference.item_type == self.item_type,
            SellerCatalogPreference.is_favorite.is_(True),
        )
        stmt = select(self.model).where(self.model.id.in_(favorite_ids)).order_by(self.model.name.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_with_preferences(self, item: CatalogEntity) -> None:
        await self.session.execute(
            sa_delete(SellerCatalogPreference).where(
                SellerCatalogPreference.item_type == self.item_type,
                SellerCatalogPreference.item_id == item.id,
            )
        )
        await self.session.delete(item)
        await self.session.commit()
