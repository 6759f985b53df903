"""
Booking Endpoints.

Anyone can book a tour; logged in customers get the booking attached to their
account. Sellers manage bookings for their own tours, admins for all tours.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.base import as_utc, utc_now
from tourbnt.core.database.entities.bookings import BOOKING_STATUSES, PAYMENT_STATUSES, Booking
from tourbnt.core.database.entities.users import User
from tourbnt.core.database.repositories import BookingRepository, TourRepository
from tourbnt.core.errors import bad_request, forbidden, not_found
from tourbnt.core.logging_config import get_logger
from tourbnt.core.models.io import (
    BookingCreate,
    BookingRead,
    BookingStatusUpdate,
    PaymentUpdate,
    ReasonRequest,
    VoucherRead,
)
from tourbnt.core.pagination import FilterSort, filter_sort, hybrid_paginate
from tourbnt.core.responses import success_response
from tourbnt.core.roles import is_admin
from tourbnt.server.services.deps import CurrentUser, OptionalUser, Pagination, SessionDep, StaffUser
from tourbnt.server.services.notifications import notify

from tourbnt.server.api.v1.tours import get_tour_or_404, seat_availability

logger = get_logger(__name__)

router = APIRouter(tags=["bookings"])

SORT_COLUMNS = {"createdAt": "created_at", "departureDate": "departure_date", "totalAmount": "total_price"}
CLOSED_STATUSES = ("cancelled", "completed")

booking_filters = filter_sort(["status", "paymentStatus", "tourId"], list(SORT_COLUMNS))


async def _get_booking_or_404(session: AsyncSession, booking_id: str) -> Booking:
    booking = await BookingRepository(session).get_by_id(booking_id)
    if booking is None:
        raise not_found("Booking not found")
    return booking


def _ensure_can_view(user: User, booking: Booking) -> None:
    if is_admin(user.roles) or user.id in (booking.user_id, booking.tour_owner_id):
        return
    raise forbidden("You do not have access to this booking")


def _ensure_manages_tour(user: User, booking: Booking) -> None:
    if not is_admin(user.roles) and booking.tour_owner_id != user.id:
        raise forbidden("You can only manage bookings for your own tours")


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    summary="Create Booking",
    description="Book a published tour. Needs at least one adult, a positive total price and enough free "
    "seats on the departure day. The tour title, code and owner are taken from the tour.",
    response_description="The booking with its reference.",
    responses={400: {"description": "Invalid booking data or tour full"}, 404: {"description": "Tour not found"}},
)
async def create_booking(payload: BookingCreate, user: OptionalUser, session: SessionDep):
    tour = await get_tour_or_404(session, payload.tour_id)
    if tour.tour_status != "Published":
        raise bad_request("This tour is not open for booking")
    departure_date = as_utc(payload.departure_date)
    seats = await seat_availability(session, tour, departure_date, requested=payload.participants.total)
    if not seats.available:
        raise bad_request("Not enough seats available for this departure", "TOUR_FULL", seats.dump())

    booking = Booking(
        tour_id=tour.id,
        tour_title=tour.title,
        tour_code=tour.code,
        tour_owner_id=tour.author_id,
        departure_date=departure_date,
        participants=payload.participants.model_dump(),
        pricing=payload.pricing,
        total_price=payload.total_price,
        currency=payload.currency,
        contact_info=payload.contact_info.model_dump(by_alias=True),
        special_requests=payload.special_requests,
        user_id=user.id if user else None,
    )
    booking = await BookingRepository(session).create(booking)
    await TourRepository(session).increment_bookings(tour.id)
    logger.info(f"Booking {booking.booking_reference} created for tour {booking.tour_id}")
    await notify(
        session,
        tour.author_id,
        "booking",
        "New booking",
        f"{booking.contact_info.get('fullName', 'A traveller')} booked {tour.title} ({booking.booking_reference})",
        link=f"/dashboard/bookings/{booking.id}",
        sender_id=user.id if user else None,
    )
    return success_response(BookingRead.serialize(booking), "Booking created successfully")


@router.get(
    "/reference/{reference}",
    summary="Find Booking By Reference",
    description="Look a booking up by its `TB-` reference.",
    response_description="The booking.",
    responses={404: {"description": "Booking not found"}},
)
async def get_by_reference(reference: str, session: SessionDep):
    booking = await BookingRepository(session).get_by_reference(reference)
    if booking is None:
        raise not_found("Booking not found")
    return success_response(BookingRead.serialize(booking), "Booking retrieved successfully")


@router.get(
    "/my-bookings",
    summary="List My Bookings",
    description="Bookings made by the caller.",
    response_description="Paginated bookings.",
)
async def my_bookings(user: CurrentUser, session: SessionDep, pagination: Pagination):
    stmt = BookingRepository(session).build_list_query(user_id=user.id, sort_order=pagination.sort_order)
    return await hybrid_paginate(
        session, stmt, pagination, serializer=BookingRead.serialize, message="Bookings retrieved successfully"
    )


@router.get(
    "/stats",
    summary="Booking Statistics",
    description="Counts by status and payment status plus paid revenue. Sellers see their own tours only.",
    response_description="`{total, byStatus, byPaymentStatus, revenue}`",
)
async def booking_stats(user: StaffUser, session: SessionDep):
    stats = await BookingRepository(session).stats(None if is_admin(user.roles) else user.id)
    return success_response(stats, "Booking statistics retrieved successfully")


@router.get(
    "/",
    summary="List Bookings",
    description="Filters: status, paymentStatus, tourId. Sort: createdAt, departureDate, totalAmount. "
    "Sellers see bookings for their own tours.",
    response_description="Paginated bookings.",
)
async def list_bookings(
    user: StaffUser, session: SessionDep, pagination: Pagination, fs: FilterSort = Depends(booking_filters)
):
    filters = {
        "status": fs.filters.get("status"),
        "payment_status": fs.filters.get("paymentStatus"),
        "tour_id": fs.filters.get("tourId"),
    }
    field = fs.sort_field or pagination.sort_by
    stmt = BookingRepository(session).build_list_query(
        filters=filters,
        tour_owner_id=None if is_admin(user.roles) else user.id,
        sort_by=SORT_COLUMNS.get(field, "created_at"),
        sort_order=fs.order(pagination.sort_order),
    )
    return await hybrid_paginate(
        session, stmt, pagination, serializer=BookingRead.serialize, message="Bookings retrieved successfully"
    )


@router.get(
    "/{booking_id}",
    summary="Get Booking",
    description="Visible to the customer, the tour owner and admins.",
    response_description="The booking.",
    responses={403: {"description": "No access"}, 404: {"description": "Booking not found"}},
)
async def get_booking(booking_id: str, user: CurrentUser, session: SessionDep):
    booking = await _get_booking_or_404(session, booking_id)
    _ensure_can_view(user, booking)
    return success_response(BookingRead.serialize(booking), "Booking retrieved successfully")


@router.patch(
    "/{booking_id}/status",
    summary="Update Booking Status",
    description=f"Set the status to one of {', '.join(BOOKING_STATUSES)}.",
    response_description="The updated booking.",
    responses={400: {"description": "Invalid status"}, 404: {"description": "Booking not found"}},
)
async def update_status(booking_id: str, payload: BookingStatusUpdate, user: StaffUser, session: SessionDep):
    if payload.status not in BOOKING_STATUSES:
        raise bad_request(f"Invalid status. Must be one of: {', '.join(BOOKING_STATUSES)}")
    booking = await _get_booking_or_404(session, booking_id)
    _ensure_manages_tour(user, booking)
    changes = {"status": payload.status}
    if payload.notes is not None:
        changes["notes"] = payload.notes
    if payload.status == "cancelled" and booking.cancelled_at is None:
        changes["cancelled_at"] = utc_now()
    booking = await BookingRepository(session).apply_changes(booking, changes)
    logger.info(f"Booking {booking.booking_reference} status set to {booking.status} by {user.id}")
    return success_response(BookingRead.serialize(booking), "Booking status updated successfully")


@router.patch(
    "/{booking_id}/payment",
    summary="Update Payment",
    description=f"Set the payment status to one of {', '.join(PAYMENT_STATUSES)}.",
    response_description="The updated booking.",
    responses={400: {"description": "Invalid payment status"}, 404: {"description": "Booking not found"}},
)
async def update_payment(booking_id: str, payload: PaymentUpdate, user: StaffUser, session: SessionDep):
    if payload.payment_status not in PAYMENT_STATUSES:
        raise bad_request(f"Invalid payment status. Must be one of: {', '.join(PAYMENT_STATUSES)}")
    booking = await _get_booking_or_404(session, booking_id)
    _ensure_manages_tour(user, booking)
    changes = payload.model_dump(exclude_none=True)
    booking = await BookingRepository(session).apply_changes(booking, changes)
    return success_response(BookingRead.serialize(booking), "Payment status updated successfully")


@router.post(
    "/{booking_id}/cancel",
    summary="Cancel Booking",
    description="Cancel a booking. Allowed for the customer, the tour owner and admins.",
    response_description="The cancelled booking.",
    responses={400: {"description": "Already cancelled or completed"}, 404: {"description": "Booking not found"}},
)
@router.delete("/{booking_id}", include_in_schema=False)
async def cancel_booking(
    booking_id: str, user: CurrentUser, session: SessionDep, payload: Optional[ReasonRequest] = None
):
    booking = await _get_booking_or_404(session, booking_id)
    _ensure_can_view(user, booking)
    if booking.status in CLOSED_STATUSES:
        raise bad_request(f"Cannot cancel a {booking.status} booking")
    booking = await BookingRepository(session).apply_changes(
        booking,
        {
            "status": "cancelled",
            "cancellation_reason": payload.reason if payload else None,
            "cancelled_at": utc_now(),
        },
    )
    logger.info(f"Booking {booking.booking_reference} cancelled by {user.id}")
    return success_response(BookingRead.serialize(booking), "Booking cancelled successfully")


@router.get(
    "/{booking_id}/voucher",
    summary="Get Voucher",
    description="Travel voucher for a confirmed booking.",
    response_description="The voucher summary.",
    responses={400: {"description": "Booking not confirmed"}, 404: {"description": "Booking not found"}},
)
async def get_voucher(booking_id: str, user: CurrentUser, session: SessionDep):
    booking = await _get_booking_or_404(session, booking_id)
    _ensure_can_view(user, booking)
    if booking.status != "confirmed":
        raise bad_request("Voucher is only available for confirmed bookings")
    voucher = VoucherRead(
        booking_reference=booking.booking_reference,
        tour_title=booking.tour_title,
        tour_code=booking.tour_code,
        departure_date=booking.departure_date,
        lead_traveller=booking.contact_info.get("fullName", ""),
        email=booking.contact_info.get("email", ""),
        participants=booking.participants,
        total_participants=booking.participant_count,
        total_price=booking.total_price,
        currency=booking.currency,
        payment_status=booking.payment_status,
        issued_at=utc_now(),
    )
    return success_response(voucher.dump(), "Voucher generated successfully")
