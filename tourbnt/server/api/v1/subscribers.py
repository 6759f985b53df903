"""
Newsletter Subscriber Endpoints.
"""

from __future__ import annotations

import re

from fastapi import APIRouter, Depends, Response, status

from tourbnt.core.database.entities.subscribers import Subscriber
from tourbnt.core.database.repositories import SubscriberRepository
from tourbnt.core.errors import ApiError, bad_request, not_found
from tourbnt.core.logging_config import get_logger
from tourbnt.core.models.io import SubscriberCreate, SubscriberRead
from tourbnt.core.pagination import hybrid_paginate
from tourbnt.core.responses import success_response
from tourbnt.server.middleware.rate_limit import general_limiter
from tourbnt.server.services.deps import AdminUser, Pagination, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["subscribers"])

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(raw: str) -> str:
    """Trim and lowercase ``raw``; 400 ``INVALID_EMAIL`` when it is not an address."""
    email = (raw or "").strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise bad_request("Please provide a valid email address", "INVALID_EMAIL")
    return email


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(general_limiter)],
    summary="Subscribe",
    description="Subscribe an email address to the newsletter.",
    response_description="The new subscription.",
    responses={
        400: {"description": "Invalid email"},
        409: {"description": "Already subscribed"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def subscribe(payload: SubscriberCreate, session: SessionDep):
    email = normalize_email(payload.email)
    repo = SubscriberRepository(session)
    if await repo.get_by_email(email) is not None:
        raise ApiError(409, "This email is already subscribed", "DUPLICATE_SUBSCRIPTION")
    subscriber = await repo.create(Subscriber(email=email))
    logger.info(f"New subscriber {subscriber.id}")
    return success_response(SubscriberRead.serialize(subscriber), "Subscribed successfully")


@router.get(
    "/",
    summary="List Subscribers",
    description="All subscribers, newest first.",
    response_description="Paginated subscribers.",
)
async def list_subscribers(admin: AdminUser, session: SessionDep, pagination: Pagination):
    stmt = SubscriberRepository(session).build_list_query(sort_order="desc")
    return await hybrid_paginate(
        session, stmt, pagination, serializer=SubscriberRead.serialize, message="Subscribers retrieved successfully"
    )


@router.delete(
    "/{email}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unsubscribe",
    description="Remove an email address from the newsletter.",
    responses={400: {"description": "Invalid email"}, 404: {"description": "Not subscribed"}},
)
async def unsubscribe(email: str, session: SessionDep):
    email = normalize_email(email)
    if not await SubscriberRepository(session).delete_by_email(email):
        raise not_found("Subscriber not found", "SUBSCRIBER_NOT_FOUND")
    logger.info("Subscriber removed")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
