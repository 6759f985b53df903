"""
Notification Endpoints.

Every route works on the caller's own notifications only.
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.base import utc_now
from tourbnt.core.database.entities.notifications import Notification
from tourbnt.core.database.entities.users import User
from tourbnt.core.database.repositories import NotificationRepository, UserRepository
from tourbnt.core.errors import not_found
from tourbnt.core.models.io import NotificationRead, UserSummary
from tourbnt.core.pagination import hybrid_paginate
from tourbnt.core.responses import success_response
from tourbnt.server.services.deps import CurrentUser, Pagination, SessionDep

router = APIRouter(tags=["notifications"])


async def serialize_notifications(session: AsyncSession, notifications: List[Notification]) -> List[Dict[str, Any]]:
    """Dump notifications with their sender embedded as ``{id, name, email}``."""
    sender_ids = list({n.sender_id for n in notifications if n.sender_id})
    users = await UserRepository(session).get_many(sender_ids)
    senders = {sender.id: UserSummary.model_validate(sender) for sender in users}
    items = []
    for notification in notifications:
        read = NotificationRead.model_validate(notification)
        read.sender = senders.get(notification.sender_id)
        items.append(read.dump())
    return items


async def _own_notification(session: AsyncSession, notification_id: str, user: User) -> Notification:
    notification = await NotificationRepository(session).get_by_id(notification_id)
    if notification is None or notification.recipient_id != user.id:
        raise not_found("Notification not found")
    return notification


@router.get(
    "/",
    summary="List Notifications",
    description="The caller's notifications, newest first, with the unread count.",
    response_description="Paginated notifications plus `unreadCount`.",
)
async def list_notifications(
    user: CurrentUser,
    session: SessionDep,
    pagination: Pagination,
    unread_only: bool = Query(default=False, alias="unreadOnly"),
):
    repo = NotificationRepository(session)
    stmt = repo.build_list_query(user.id, unread_only=unread_only)
    body = await hybrid_paginate(
        session,
        stmt,
        pagination,
        batch_serializer=serialize_notifications,
        message="Notifications retrieved successfully",
    )
    if isinstance(body, dict):
        body["unreadCount"] = await repo.unread_count(user.id)
    return body


@router.patch(
    "/{notification_id}/read",
    summary="Mark Notification Read",
    description="Mark one of the caller's notifications as read.",
    response_description="The notification.",
    responses={404: {"description": "Notification not found"}},
)
async def mark_read(notification_id: str, user: CurrentUser, session: SessionDep):
    notification = await _own_notification(session, notification_id, user)
    if not notification.is_read:
        notification = await NotificationRepository(session).apply_changes(
            notification, {"is_read": True, "read_at": utc_now()}
        )
    return success_response((await serialize_notifications(session, [notification]))[0], "Notification marked as read")


@router.delete(
    "/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Notification",
    description="Delete one of the caller's notifications.",
    responses={404: {"description": "Notification not found"}},
)
async def delete_notification(notification_id: str, user: CurrentUser, session: SessionDep):
    notification = await _own_notification(session, notification_id, user)
    await NotificationRepository(session).delete(notification.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
