"""
Review repository.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy import update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.reviews import Review
from ..entities.tours import Tour
from .base import QueryBuilder, SQLModelRepository


class ReviewRepository(SQLModelRepository[Review]):
    """Repository for review data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Review)

    async def get_for_user(self, tour_id: str, user_id: str) -> Optional[Review]:
        stmt = select(Review).where(Review.tour_id == tour_id, Review.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def build_list_query(
        self,
        status: Optional[str] = None,
        tour_id: Optional[str] = None,
        tour_owner_id: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "desc",
    ):
        """Review listing query.

        Without ``sort_by`` reviews are ordered best rated first, newest first
        within a rating.
        """
        stmt = select(Review)
        if status is not None:
            stmt = stmt.where(Review.status == status)
        if tour_id is not None:
            stmt = stmt.where(Review.tour_id == tour_id)
        if tour_owner_id is not None:
            stmt = stmt.where(Review.tour_id.in_(select(Tour.id).where(Tour.author_id == tour_owner_id)))
        if sort_by is None:
            return stmt.order_by(Review.rating.desc(), Review.created_at.desc())
        return QueryBuilder.apply_sort(stmt, Review, sort_by, sort_order)

    async def increment(self, review_id: str, counter: str) -> bool:
        """Atomically add one to ``likes`` or ``views``; ``False`` when the review is gone."""
        column = getattr(Review, counter)
        result = await self.session.execute(
            sa_update(Review).where(Review.id == review_id).values({counter: column + 1})
        )
        await self.session.commit()
        return result.rowcount > 0

    async def rating_summary(self, tour_id: str) -> Dict[str, Any]:
        """Average over approved reviews plus total and approved counts."""
        approved = await self.session.execute(
            select(func.avg(Review.rating), func.count()).select_from(Review).where(
                Review.tour_id == tour_id, Review.status == "approved"
            )
        )
        average, approved_count = approved.one()
        total = await self.session.execute(select(func.count()).select_from(Review).where(Review.tour_id == tour_id))
        return {
            "averageRating": float(average or 0.0),
            "reviewCount": int(total.scalar_one()),
            "approvedReviewCount": int(approved_count),
        }

    async def refresh_tour_rating(self, tour: Tour) -> Dict[str, Any]:
        """Store the current rating summary on ``tour`` and return it."""
        summary = await self.rating_summary(tour.id)
        tour.average_rating = summary["averageRating"]
        tour.review_count = summary["reviewCount"]
        tour.approved_review_count = summary["approvedReviewCount"]
        self.session.add(tour)
        await self.session.commit()
        await self.session.refresh(tour)
        return summary
