"""
Tour repository.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import String, cast, or_
from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..base import utc_now
from ..entities.reviews import Review
from ..entities.tours import Tour, new_tour_code
from .base import QueryBuilder, SQLModelRepository

HIGHLIGHTS = ("latest", "rating", "discounted", "special-offers")


def in_category(category_id: str):
    """Match tours whose ``category_ids`` JSON list holds ``category_id``."""
    return cast(Tour.category_ids, String).contains(f'"{category_id}"')


class TourRepository(SQLModelRepository[Tour]):
    """Repository for tour data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Tour)

    async def get_by_code(self, code: str) -> Optional[Tour]:
        result = await self.session.execute(select(Tour).where(Tour.code == code))
        return result.scalar_one_or_none()

    async def unique_code(self) -> str:
        code = new_tour_code()
        while await self.get_by_code(code) is not None:
            code = new_tour_code()
        return code

    def build_list_query(
        self,
        filters: Optional[Dict[str, Any]] = None,
        category: Optional[str] = None,
        published_only: bool = True,
        hide_price_locked: bool = False,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ):
        """Tour listing query.

        Args:
            filters: Column equality filters (``author_id``, ``destination_id``, ...)
            category: Category id the tour must be tagged with
            published_only: Restrict to ``Published`` tours
            hide_price_locked: Drop tours whose price lock date has passed
            sort_by: Column to order by
            sort_order: ``asc`` or ``desc``
        """
        stmt = select(Tour)
        if published_only:
            stmt = stmt.where(Tour.tour_status == "Published")
        if hide_price_locked:
            stmt = stmt.where(or_(Tour.price_lock_date.is_(None), Tour.price_lock_date > utc_now()))
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, Tour, filters)
        if category:
            stmt = stmt.where(in_category(category))
        return QueryBuilder.apply_sort(stmt, Tour, sort_by, sort_order)

    def build_search_query(
        self,
        keyword: Optional[str] = None,
        destination: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        rating: Optional[float] = None,
        category: Optional[str] = None,
    ):
        """Published tours matching every given criterion, newest first.

        ``keyword`` is matched case insensitively against the title,
        description and outline.
        """
        stmt = select(Tour).where(Tour.tour_status == "Published")
        if keyword:
            pattern = f"%{keyword}%"
            stmt = stmt.where(
                or_(Tour.title.ilike(pattern), Tour.description.ilike(pattern), Tour.outline.ilike(pattern))
            )
        if destination:
            stmt = stmt.where(Tour.destination_id == destination)
        if min_price is not None:
            stmt = stmt.where(Tour.price >= min_price)
        if max_price is not None:
            stmt = stmt.where(Tour.price <= max_price)
        if rating is not None:
            stmt = stmt.where(Tour.average_rating >= rating)
        if category:
            stmt = stmt.where(in_category(category))
        return stmt.order_by(Tour.created_at.desc())

    async def highlights(self, criteria: str, limit: int = 10) -> List[Tour]:
        """Published tours for one of the home page rails in ``HIGHLIGHTS``."""
        stmt = select(Tour).where(Tour.tour_status == "Published")
        if criteria == "rating":
            stmt = stmt.where(Tour.review_count > 0).order_by(Tour.average_rating.desc(), Tour.created_at.desc())
        else:
            if criteria == "discounted":
                stmt = stmt.where(Tour.discount_enabled.is_(True))
            elif criteria == "special-offers":
                stmt = stmt.where(Tour.is_special_offer.is_(True))
            stmt = stmt.order_by(Tour.created_at.desc())
        result = await self.session.execute(stmt.limit(limit))
        return list(result.scalars().all())

    async def titles_for(self, author_id: str) -> List[Dict[str, str]]:
        """``{id, title, code}`` of every tour by ``author_id``, newest first."""
        stmt = (
            select(Tour.id, Tour.title, Tour.code)
            .where(Tour.author_id == author_id)
            .order_by(Tour.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return [{"id": row.id, "title": row.title, "code": row.code} for row in result.all()]

    async def increment_views(self, tour_id: str) -> None:
        """Atomically add one view without loading the row."""
        await self.session.execute(sa_update(Tour).where(Tour.id == tour_id).values(views=Tour.views + 1))
        await self.session.commit()

    async def increment_bookings(self, tour_id: str) -> int:
        """Add one to the booking counter and return the new value."""
        await self.session.execute(
            sa_update(Tour).where(Tour.id == tour_id).values(booking_count=Tour.booking_count + 1)
        )
        await self.session.commit()
        result = await self.session.execute(select(Tour.booking_count).where(Tour.id == tour_id))
        return int(result.scalar_one())

    async def using_fact(self, fact_id: str) -> List[Tour]:
        """Tours with a fact entry copied from ``fact_id``."""
        stmt = select(Tour).where(cast(Tour.facts, String).contains(fact_id))
        result = await self.session.execute(stmt)
        return [tour for tour in result.scalars().all() if any(f.get("factId") == fact_id for f in tour.facts)]

    async def delete_with_reviews(self, tour: Tour) -> None:
        await self.session.execute(sa_delete(Review).where(Review.tour_id == tour.id))
        await self.session.delete(tour)
        await self.session.commit()
