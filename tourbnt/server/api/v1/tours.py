"""
Tour Endpoints.

Public browsing and search of published tours, plus tour authoring for
sellers and admins. Review routes nested under ``/tours`` live in
``reviews``.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.base import as_utc
from tourbnt.core.database.entities.tours import Tour
from tourbnt.core.database.entities.users import User
from tourbnt.core.database.repositories import BookingRepository, FactRepository, TourRepository, UserRepository
from tourbnt.core.errors import bad_request, forbidden, not_found
from tourbnt.core.logging_config import get_logger
from tourbnt.core.models.io import (
    Availability,
    BookingRead,
    Breadcrumb,
    TourCreate,
    TourDetail,
    TourRead,
    TourUpdate,
    UserSummary,
)
from tourbnt.core.pagination import FilterSort, filter_sort, hybrid_paginate
from tourbnt.core.responses import success_response
from tourbnt.core.roles import is_admin
from tourbnt.server.services.auth import ensure_owner_or_admin
from tourbnt.server.services.deps import CurrentUser, Pagination, SessionDep, StaffUser

logger = get_logger(__name__)

router = APIRouter(tags=["tours"])

TOUR_NOT_FOUND = "TOUR_NOT_FOUND"
TOURS_RETRIEVED = "Tours retrieved successfully"

SORT_COLUMNS = {
    "createdAt": "created_at",
    "price": "price",
    "title": "title",
    "views": "views",
    "rating": "average_rating",
}

tour_filters = filter_sort(["destination", "category"], list(SORT_COLUMNS))


async def serialize_tours(session: AsyncSession, tours: List[Tour]) -> List[Dict[str, Any]]:
    """Dump tours with their author embedded as ``{id, name, email}``."""
    authors = await UserRepository(session).get_many(list({tour.author_id for tour in tours}))
    by_id = {author.id: UserSummary.model_validate(author) for author in authors}
    items = []
    for tour in tours:
        read = TourRead.model_validate(tour)
        read.author = by_id.get(tour.author_id)
        items.append(read.dump())
    return items


async def get_tour_or_404(session: AsyncSession, tour_id: str) -> Tour:
    tour = await TourRepository(session).get_by_id(tour_id)
    if tour is None:
        raise not_found("Tour not found", TOUR_NOT_FOUND)
    return tour


async def _owned_tour(session: AsyncSession, tour_id: str, user: User) -> Tour:
    tour = await get_tour_or_404(session, tour_id)
    if not is_admin(user.roles) and tour.author_id != user.id:
        raise forbidden("You do not have permission to modify this tour")
    return tour


async def enrich_facts(session: AsyncSession, facts: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Refresh title, icon and field type from the fact definitions; flatten ``[{value}]`` lists."""
    fact_ids = [entry["factId"] for entry in facts if entry.get("factId")]
    masters = {fact.id: fact for fact in await FactRepository(session).get_many(fact_ids)}
    enriched = []
    for entry in facts:
        entry = dict(entry)
        master = masters.get(entry.get("factId"))
        if master is not None:
            entry.update(title=master.name, icon=master.icon, fieldType=master.field_type)
        value = entry.get("value")
        if isinstance(value, list) and value and isinstance(value[0], dict):
            entry["value"] = [item.get("value") if isinstance(item, dict) else item for item in value]
        enriched.append(entry)
    return enriched


async def _increment_views(bind, tour_id: str) -> None:
    # runs after the response, outside the request scoped session
    async with AsyncSession(bind) as session:
        try:
            await TourRepository(session).increment_views(tour_id)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to increment views for tour {tour_id}: {e}")


def _non_negative(value: Optional[str], field: str, message: str, errors: List[Dict[str, str]]) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except ValueError:
        number = -1.0
    if not number >= 0:
        errors.append({"field": field, "message": message})
        return None
    return number


@router.get(
    "/",
    summary="List Tours",
    description="Published tours whose price lock date has not passed. Filters: destination, category. "
    "Sort: createdAt, price, title, views, rating.",
    response_description="Paginated tours with embedded authors.",
    responses={400: {"description": "Invalid pagination or sort field"}},
)
async def list_tours(session: SessionDep, pagination: Pagination, fs: FilterSort = Depends(tour_filters)):
    field = fs.sort_field or pagination.sort_by
    stmt = TourRepository(session).build_list_query(
        filters={"destination_id": fs.filters.get("destination")},
        category=fs.filters.get("category"),
        hide_price_locked=True,
        sort_by=SORT_COLUMNS.get(field, "created_at"),
        sort_order=fs.order(pagination.sort_order),
    )
    return await hybrid_paginate(session, stmt, pagination, batch_serializer=serialize_tours, message=TOURS_RETRIEVED)


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    summary="Create Tour",
    description="Create a tour authored by the caller. A unique code is generated when none is given.",
    response_description="The created tour.",
    responses={400: {"description": "Invalid tour data or duplicate code"}, 403: {"description": "Not admin or seller"}},
)
async def create_tour(payload: TourCreate, user: StaffUser, session: SessionDep):
    repo = TourRepository(session)
    if payload.code:
        if await repo.get_by_code(payload.code) is not None:
            raise bad_request("Tour code already exists")
        code = payload.code
    else:
        code = await repo.unique_code()
    tour = Tour(
        **payload.model_dump(exclude={"code", "facts"}),
        code=code,
        facts=[fact.dump() for fact in payload.facts],
        author_id=user.id,
    )
    tour = await repo.create(tour)
    logger.info(f"Tour {tour.code} created by {user.id}")
    return success_response((await serialize_tours(session, [tour]))[0], "Tour created successfully")


@router.get(
    "/search",
    summary="Search Tours",
    description="Published tours matching a keyword (title, description, outline), destination, "
    "price range, minimum rating and category.",
    response_description="Paginated tours, newest first.",
    responses={400: {"description": "Invalid price range or rating"}},
)
async def search_tours(
    session: SessionDep,
    pagination: Pagination,
    keyword: Optional[str] = None,
    destination: Optional[str] = None,
    min_price: Optional[str] = Query(default=None, alias="minPrice"),
    max_price: Optional[str] = Query(default=None, alias="maxPrice"),
    rating: Optional[str] = None,
    category: Optional[str] = None,
):
    errors: List[Dict[str, str]] = []
    low = _non_negative(min_price, "minPrice", "Minimum price must be a non-negative number", errors)
    high = _non_negative(max_price, "maxPrice", "Maximum price must be a non-negative number", errors)
    if low is not None and high is not None and low > high:
        errors.append({"field": "priceRange", "message": "Minimum price cannot be greater than maximum price"})
    min_rating = _non_negative(rating, "rating", "Rating must be between 0 and 5", errors)
    if min_rating is not None and min_rating > 5:
        errors.append({"field": "rating", "message": "Rating must be between 0 and 5"})
    if errors:
        raise bad_request(errors[0]["message"] if len(errors) == 1 else "Validation failed", errors=errors)

    stmt = TourRepository(session).build_search_query(keyword, destination, low, high, min_rating, category)
    return await hybrid_paginate(session, stmt, pagination, batch_serializer=serialize_tours, message=TOURS_RETRIEVED)


async def _highlights(session: AsyncSession, criteria: str, limit: int) -> Dict[str, Any]:
    tours = await TourRepository(session).highlights(criteria, limit)
    return success_response({"tours": await serialize_tours(session, tours)}, TOURS_RETRIEVED)


@router.get("/latest", summary="Latest Tours", response_description="`{tours}`")
async def latest_tours(session: SessionDep, limit: int = Query(default=10, ge=1, le=100)):
    return await _highlights(session, "latest", limit)


@router.get(
    "/by-rating",
    summary="Top Rated Tours",
    description="Reviewed tours, best average rating first.",
    response_description="`{tours}`",
)
async def tours_by_rating(session: SessionDep, limit: int = Query(default=10, ge=1, le=100)):
    return await _highlights(session, "rating", limit)


@router.get("/discounted", summary="Discounted Tours", response_description="`{tours}`")
async def discounted_tours(session: SessionDep, limit: int = Query(default=10, ge=1, le=100)):
    return await _highlights(session, "discounted", limit)


@router.get("/special-offers", summary="Special Offer Tours", response_description="`{tours}`")
async def special_offer_tours(session: SessionDep, limit: int = Query(default=10, ge=1, le=100)):
    return await _highlights(session, "special-offers", limit)


@router.get(
    "/user/{user_id}",
    summary="List Tours By User",
    description="Every tour of one author, drafts included. Non-admins may only list their own.",
    response_description="Paginated tours.",
    responses={403: {"description": "Another user's tours"}},
)
async def list_user_tours(
    user_id: str, user: CurrentUser, session: SessionDep, pagination: Pagination, fs: FilterSort = Depends(tour_filters)
):
    ensure_owner_or_admin(user, user_id, "Access denied: Cannot access other user's tours")
    field = fs.sort_field or pagination.sort_by
    stmt = TourRepository(session).build_list_query(
        filters={"author_id": user_id, "destination_id": fs.filters.get("destination")},
        category=fs.filters.get("category"),
        published_only=False,
        sort_by=SORT_COLUMNS.get(field, "created_at"),
        sort_order=fs.order(pagination.sort_order),
    )
    return await hybrid_paginate(session, stmt, pagination, batch_serializer=serialize_tours, message=TOURS_RETRIEVED)


@router.get(
    "/user/{user_id}/titles",
    summary="List Tour Titles By User",
    description="`{id, title, code}` of every tour of one author, for pickers.",
    response_description="Tour titles, newest first.",
    responses={403: {"description": "Another user's tours"}},
)
async def list_user_tour_titles(user_id: str, user: CurrentUser, session: SessionDep):
    ensure_owner_or_admin(user, user_id, "Access denied: Cannot access other user's tours")
    titles = await TourRepository(session).titles_for(user_id)
    return success_response(titles, TOURS_RETRIEVED)


@router.get(
    "/{tour_id}",
    summary="Get Tour",
    description="A tour with breadcrumbs and up to date fact labels. The view counter is bumped after "
    "the response is sent.",
    response_description="`{tour, breadcrumbs}`",
    responses={404: {"description": "Tour not found"}},
)
async def get_tour(tour_id: str, session: SessionDep, background_tasks: BackgroundTasks):
    tour = await get_tour_or_404(session, tour_id)
    background_tasks.add_task(_increment_views, session.bind, tour.id)
    read = TourRead.model_validate((await serialize_tours(session, [tour]))[0])
    read.facts = await enrich_facts(session, tour.facts)
    detail = TourDetail(
        tour=read,
        breadcrumbs=[
            Breadcrumb(label="Home", url="/"),
            Breadcrumb(label="Tours", url="/tours"),
            Breadcrumb(label=tour.title, url=f"/tours/{tour.id}"),
        ],
    )
    return success_response(detail.dump(), "Tour retrieved successfully")


@router.get(
    "/{tour_id}/availability",
    summary="Check Availability",
    description="Seats left on the given departure day. Tours without a group size limit are always available.",
    response_description="`{date, available, availableSeats, totalCapacity, bookedSeats}`",
    responses={400: {"description": "Missing or invalid date"}, 404: {"description": "Tour not found"}},
)
async def check_availability(tour_id: str, session: SessionDep, date: Optional[str] = None):
    if not date:
        raise bad_request("Date parameter is required")
    try:
        departure = as_utc(datetime.fromisoformat(date))
    except ValueError as e:
        raise bad_request("Invalid date format") from e
    tour = await get_tour_or_404(session, tour_id)
    availability = await seat_availability(session, tour, departure)
    return success_response(availability.dump(), "Tour availability checked successfully")


async def seat_availability(session: AsyncSession, tour: Tour, departure: datetime, requested: int = 0) -> Availability:
    """Seats on ``tour`` for the UTC day of ``departure``; ``requested`` more must still fit."""
    day_start = departure.replace(hour=0, minute=0, second=0, microsecond=0)
    booked = await BookingRepository(session).seats_booked(tour.id, day_start, day_start + timedelta(days=1))
    if tour.max_group_size is None:
        return Availability(date=day_start.date().isoformat(), available=True, booked_seats=booked)
    left = max(tour.max_group_size - booked, 0)
    return Availability(
        date=day_start.date().isoformat(),
        available=left > 0 and left >= requested,
        available_seats=left,
        total_capacity=tour.max_group_size,
        booked_seats=booked,
    )


@router.get(
    "/{tour_id}/bookings",
    summary="List Tour Bookings",
    description="Bookings of one tour. Tour owner or admin only.",
    response_description="Paginated bookings, newest first.",
    responses={403: {"description": "Not the tour owner"}, 404: {"description": "Tour not found"}},
)
async def list_tour_bookings(tour_id: str, user: StaffUser, session: SessionDep, pagination: Pagination):
    tour = await get_tour_or_404(session, tour_id)
    ensure_owner_or_admin(user, tour.author_id, "You can only view bookings for your own tours")
    stmt = BookingRepository(session).build_list_query(
        filters={"tour_id": tour.id}, sort_order=pagination.sort_order
    )
    return await hybrid_paginate(
        session, stmt, pagination, serializer=BookingRead.serialize, message="Bookings retrieved successfully"
    )


@router.patch(
    "/{tour_id}/bookings/increment",
    summary="Increment Booking Count",
    description="Add one to the tour's booking counter.",
    response_description="`{bookingCount}`",
    responses={403: {"description": "Not the tour owner"}, 404: {"description": "Tour not found"}},
)
async def increment_tour_bookings(tour_id: str, user: StaffUser, session: SessionDep):
    tour = await _owned_tour(session, tour_id, user)
    count = await TourRepository(session).increment_bookings(tour.id)
    return success_response({"bookingCount": count}, "Tour booking count incremented")


@router.patch(
    "/{tour_id}",
    summary="Update Tour",
    description="Update a tour. Only the author or an admin may edit it.",
    response_description="The updated tour.",
    responses={403: {"description": "Not the author"}, 404: {"description": "Tour not found"}},
)
async def update_tour(tour_id: str, payload: TourUpdate, user: StaffUser, session: SessionDep):
    tour = await _owned_tour(session, tour_id, user)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if payload.facts is not None:
        changes["facts"] = [fact.dump() for fact in payload.facts]
    tour = await TourRepository(session).apply_changes(tour, changes)
    return success_response((await serialize_tours(session, [tour]))[0], "Tour updated successfully")


@router.delete(
    "/{tour_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Tour",
    description="Delete a tour with all of its reviews. Bookings are kept.",
    responses={403: {"description": "Not the author"}, 404: {"description": "Tour not found"}},
)
async def delete_tour(tour_id: str, user: StaffUser, session: SessionDep):
    tour = await _owned_tour(session, tour_id, user)
    await TourRepository(session).delete_with_reviews(tour)
    logger.info(f"Tour {tour_id} deleted by {user.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
