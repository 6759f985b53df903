"""
Booking repository.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.bookings import Booking
from .base import QueryBuilder, SQLModelRepository


class BookingRepository(SQLModelRepository[Booking]):
    """Repository for booking data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Booking)

    async def get_by_reference(self, reference: str) -> Optional[Booking]:
        stmt = select(Booking).where(Booking.booking_reference == reference.strip().upper())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def build_list_query(
        self,
        filters: Optional[Dict[str, Any]] = None,
        tour_owner_id: Optional[str] = None,
        user_id: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ):
        stmt = select(Booking)
        if tour_owner_id is not None:
            stmt = stmt.where(Booking.tour_owner_id == tour_owner_id)
        if user_id is not None:
            stmt = stmt.where(Booking.user_id == user_id)
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, Booking, filters)
        return QueryBuilder.apply_sort(stmt, Booking, sort_by, sort_order)

    async def stats(self, tour_owner_id: Optional[str] = None) -> Dict[str, Any]:
        """Booking counts grouped by status and payment status plus paid revenue."""

        def scoped(stmt):
            if tour_owner_id is not None:
                stmt = stmt.where(Booking.tour_owner_id == tour_owner_id)
            return stmt

        by_status = await self.session.execute(
            scoped(select(Booking.status, func.count()).group_by(Booking.status))
        )
        by_payment = await self.session.execute(
            scoped(select(Booking.payment_status, func.count()).group_by(Booking.payment_status))
        )
        revenue = await self.session.execute(
            scoped(select(func.coalesce(func.sum(Booking.total_price), 0.0)).where(Booking.payment_status == "paid"))
        )
        status_counts = {status: count for status, count in by_status.all()}
        return {
            "total": sum(status_counts.values()),
            "byStatus": status_counts,
            "byPaymentStatus": {status: count for status, count in by_payment.all()},
            "revenue": float(revenue.scalar_one() or 0.0),
        }

    async def seats_booked(self, tour_id: str, day_start: datetime, day_end: datetime) -> int:
        """Participants on non-cancelled bookings of ``tour_id`` departing in ``[day_start, day_end)``."""
        stmt = select(Booking).where(
            Booking.tour_id == tour_id,
            Booking.status != "cancelled",
            Booking.departure_date >= day_start,
            Booking.departure_date < day_end,
        )
        result = await self.session.execute(stmt)
        return sum(booking.participant_count for booking in result.scalars().all())
