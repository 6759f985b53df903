"""
Review Endpoints.

``tour_router`` is mounted on ``/tours`` and carries writing and reading the
reviews of one tour. ``router`` is mounted on ``/reviews`` and covers the
public review feed, moderation, replies and likes.

Reviews start out ``pending`` and are only public once the tour owner or an
admin approves them. The tour's rating aggregates count approved reviews.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.base import new_id, utc_now
from tourbnt.core.database.entities.reviews import REVIEW_STATUSES, Review
from tourbnt.core.database.entities.tours import Tour
from tourbnt.core.database.entities.users import User
from tourbnt.core.database.repositories import ReviewRepository, TourRepository, UserRepository
from tourbnt.core.errors import bad_request, forbidden, not_found
from tourbnt.core.logging_config import get_logger
from tourbnt.core.models.io import (
    RatingRead,
    ReplyCreate,
    ReviewCreate,
    ReviewRead,
    ReviewStatusUpdate,
    UserSummary,
)
from tourbnt.core.pagination import FilterSort, filter_sort, hybrid_paginate
from tourbnt.core.responses import success_response
from tourbnt.core.roles import is_admin
from tourbnt.server.services.deps import CurrentUser, OptionalUser, Pagination, SessionDep, StaffUser
from tourbnt.server.services.notifications import notify

from tourbnt.server.api.v1.tours import get_tour_or_404

logger = get_logger(__name__)

tour_router = APIRouter(tags=["reviews"])
router = APIRouter(tags=["reviews"])

REVIEW_NOT_FOUND = "REVIEW_NOT_FOUND"
REVIEWS_RETRIEVED = "Reviews retrieved successfully"

review_filters = filter_sort(["tourId"], ["createdAt", "rating"])


async def serialize_reviews(session: AsyncSession, reviews: List[Review]) -> List[Dict[str, Any]]:
    """Dump reviews with their writer embedded as ``{id, name, email}``."""
    users = await UserRepository(session).get_many(list({review.user_id for review in reviews}))
    by_id = {user.id: UserSummary.model_validate(user) for user in users}
    items = []
    for review in reviews:
        read = ReviewRead.model_validate(review)
        read.user = by_id.get(review.user_id)
        items.append(read.dump())
    return items


async def _get_review_or_404(session: AsyncSession, review_id: str) -> Review:
    review = await ReviewRepository(session).get_by_id(review_id)
    if review is None:
        raise not_found("Review not found", REVIEW_NOT_FOUND)
    return review


def _moderates(user: Optional[User], tour: Tour) -> bool:
    return user is not None and (is_admin(user.roles) or tour.author_id == user.id)


async def _with_rating(session: AsyncSession, review: Review, summary: Dict[str, Any]) -> Dict[str, Any]:
    return {"review": (await serialize_reviews(session, [review]))[0], **summary}


async def _increment_views(bind, review_id: str) -> None:
    # runs after the response, outside the request scoped session
    async with AsyncSession(bind) as session:
        try:
            await ReviewRepository(session).increment(review_id, "views")
        except SQLAlchemyError as e:
            logger.warning(f"Failed to increment views for review {review_id}: {e}")


# =====================================================================
# /tours/{tour_id}/...
# =====================================================================


@tour_router.post(
    "/{tour_id}/reviews",
    status_code=status.HTTP_201_CREATED,
    summary="Review Tour",
    description="Rate a tour from 0.5 to 5 (rounded to half stars). Writing again replaces the caller's "
    "review and sends it back to moderation.",
    response_description="`{review, averageRating, reviewCount, approvedReviewCount}`; 200 when replacing.",
    responses={400: {"description": "Rating out of range"}, 404: {"description": "Tour not found"}},
)
async def add_review(tour_id: str, payload: ReviewCreate, user: CurrentUser, session: SessionDep, response: Response):
    tour = await get_tour_or_404(session, tour_id)
    repo = ReviewRepository(session)
    review = await repo.get_for_user(tour.id, user.id)
    if review is not None:
        review = await repo.apply_changes(
            review,
            {"rating": payload.rating, "comment": payload.comment, "status": "pending", "created_at": utc_now()},
        )
        response.status_code = status.HTTP_200_OK
        message = "Review updated successfully"
    else:
        review = await repo.create(
            Review(tour_id=tour.id, user_id=user.id, rating=payload.rating, comment=payload.comment)
        )
        message = "Review added successfully. It will be visible after approval."
        await notify(
            session,
            tour.author_id,
            "review",
            "New review",
            f"{user.name} rated {tour.title} {payload.rating:g}/5",
            link=f"/tours/{tour.id}",
            sender_id=user.id,
        )
    summary = await repo.refresh_tour_rating(tour)
    logger.info(f"Review {review.id} on tour {tour.id} saved by {user.id}")
    return success_response(await _with_rating(session, review, summary), message)


@tour_router.get(
    "/{tour_id}/reviews",
    summary="List Tour Reviews",
    description="Reviews of one tour, newest first. `status` defaults to approved; other statuses and `all` "
    "are for the tour owner and admins.",
    response_description="Paginated reviews with embedded writers.",
    responses={403: {"description": "Unapproved reviews of another seller's tour"}, 404: {"description": "Tour not found"}},
)
async def list_tour_reviews(
    tour_id: str,
    session: SessionDep,
    pagination: Pagination,
    user: OptionalUser,
    review_status: str = Query(default="approved", alias="status"),
):
    tour = await get_tour_or_404(session, tour_id)
    if review_status != "approved" and not _moderates(user, tour):
        raise forbidden("Only the tour owner can view unapproved reviews")
    stmt = ReviewRepository(session).build_list_query(
        status=None if review_status == "all" else review_status,
        tour_id=tour.id,
        sort_by="created_at",
        sort_order="desc",
    )
    return await hybrid_paginate(
        session, stmt, pagination, batch_serializer=serialize_reviews, message=REVIEWS_RETRIEVED
    )


@tour_router.get(
    "/{tour_id}/rating",
    summary="Tour Rating",
    description="Average rating and number of approved reviews.",
    response_description="`{averageRating, numberOfReviews}`",
    responses={404: {"description": "Tour not found"}},
)
async def get_tour_rating(tour_id: str, session: SessionDep):
    tour = await get_tour_or_404(session, tour_id)
    summary = await ReviewRepository(session).rating_summary(tour.id)
    rating = RatingRead(average_rating=summary["averageRating"], number_of_reviews=summary["approvedReviewCount"])
    return success_response(rating.dump(), "Tour rating retrieved successfully")


# =====================================================================
# /reviews/...
# =====================================================================


@router.get(
    "/",
    summary="List Reviews",
    description="Approved reviews across all tours. Filter: tourId. Sort: createdAt, rating; by default best "
    "rated first, newest first within a rating.",
    response_description="Paginated reviews.",
    responses={400: {"description": "Invalid sort field"}},
)
async def list_reviews(session: SessionDep, pagination: Pagination, fs: FilterSort = Depends(review_filters)):
    stmt = ReviewRepository(session).build_list_query(
        status="approved",
        tour_id=fs.filters.get("tourId"),
        sort_by=fs.sort_column() if fs.sort_field else None,
        sort_order=fs.order(),
    )
    return await hybrid_paginate(
        session, stmt, pagination, batch_serializer=serialize_reviews, message=REVIEWS_RETRIEVED
    )


@router.get(
    "/pending",
    summary="List Pending Reviews",
    description="Reviews waiting for moderation, newest first. Sellers see reviews of their own tours.",
    response_description="Paginated reviews.",
)
async def list_pending_reviews(user: StaffUser, session: SessionDep, pagination: Pagination):
    stmt = ReviewRepository(session).build_list_query(
        status="pending",
        tour_owner_id=None if is_admin(user.roles) else user.id,
        sort_by="created_at",
        sort_order="desc",
    )
    return await hybrid_paginate(
        session, stmt, pagination, batch_serializer=serialize_reviews, message="Pending reviews retrieved successfully"
    )


@router.get(
    "/{review_id}",
    summary="Get Review",
    description="One review. Unapproved reviews are visible to their writer, the tour owner and admins. "
    "The view counter is bumped after the response is sent.",
    response_description="The review.",
    responses={404: {"description": "Review not found"}},
)
async def get_review(review_id: str, session: SessionDep, user: OptionalUser, background_tasks: BackgroundTasks):
    review = await _get_review_or_404(session, review_id)
    if review.status != "approved" and (user is None or user.id != review.user_id):
        tour = await TourRepository(session).get_by_id(review.tour_id)
        if tour is None or not _moderates(user, tour):
            raise not_found("Review not found", REVIEW_NOT_FOUND)
    background_tasks.add_task(_increment_views, session.bind, review.id)
    return success_response((await serialize_reviews(session, [review]))[0], "Review retrieved successfully")


@router.patch(
    "/{review_id}/status",
    summary="Moderate Review",
    description=f"Set the status to one of {', '.join(REVIEW_STATUSES)}. Tour owner or admin only.",
    response_description="`{review, averageRating, reviewCount, approvedReviewCount}`",
    responses={
        400: {"description": "Invalid status"},
        403: {"description": "Not the tour owner"},
        404: {"description": "Review not found"},
    },
)
async def update_review_status(review_id: str, payload: ReviewStatusUpdate, user: CurrentUser, session: SessionDep):
    if payload.status not in REVIEW_STATUSES:
        raise bad_request('Status must be either "approved", "rejected", or "pending"', "INVALID_STATUS")
    review = await _get_review_or_404(session, review_id)
    tour = await get_tour_or_404(session, review.tour_id)
    if not _moderates(user, tour):
        raise forbidden("You are not authorized to manage this review")
    repo = ReviewRepository(session)
    review = await repo.apply_changes(review, {"status": payload.status})
    summary = await repo.refresh_tour_rating(tour)
    logger.info(f"Review {review.id} set to {review.status} by {user.id}")
    return success_response(await _with_rating(session, review, summary), "Review status updated successfully")


@router.post(
    "/{review_id}/replies",
    status_code=status.HTTP_201_CREATED,
    summary="Reply To Review",
    description="Append a reply to a review. The review's writer is notified.",
    response_description="`{reply}`",
    responses={400: {"description": "Empty reply"}, 404: {"description": "Review not found"}},
)
async def add_reply(review_id: str, payload: ReplyCreate, user: CurrentUser, session: SessionDep):
    comment = (payload.comment or "").strip()
    if not comment:
        raise bad_request("Reply comment is required")
    review = await _get_review_or_404(session, review_id)
    reply = {
        "id": new_id(),
        "userId": user.id,
        "user": UserSummary.model_validate(user).dump(),
        "comment": comment,
        "likes": 0,
        "views": 0,
        "createdAt": utc_now().isoformat(),
    }
    await ReviewRepository(session).apply_changes(review, {"replies": [*review.replies, reply]})
    await notify(
        session,
        review.user_id,
        "reply",
        "New reply to your review",
        f"{user.name} replied to your review",
        link=f"/tours/{review.tour_id}",
        sender_id=user.id,
    )
    return success_response({"reply": reply}, "Reply added successfully")


@router.post(
    "/{review_id}/likes",
    summary="Like Review",
    description="Add one like to a review.",
    response_description="`{likes}`",
    responses={404: {"description": "Review not found"}},
)
async def like_review(review_id: str, user: CurrentUser, session: SessionDep):
    review = await _get_review_or_404(session, review_id)
    await ReviewRepository(session).increment(review.id, "likes")
    await session.refresh(review)
    return success_response({"likes": review.likes}, "Review liked successfully")
