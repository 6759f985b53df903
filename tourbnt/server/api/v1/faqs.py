"""
FAQ Endpoints.

Sellers and admins maintain question and answer pairs. Everything here
requires a session; non-admins only ever see their own FAQs.
"""

from __future__ import annotations

from fastapi import APIRouter, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.entities.faqs import Faq
from tourbnt.core.database.repositories import FaqRepository
from tourbnt.core.errors import bad_request, not_found
from tourbnt.core.logging_config import get_logger
from tourbnt.core.models.io import BulkResult, FaqCreate, FaqRead, FaqUpdate, IdsRequest
from tourbnt.core.pagination import column_name, hybrid_paginate
from tourbnt.core.responses import success_response
from tourbnt.core.roles import is_admin
from tourbnt.server.services.auth import ensure_owner_or_admin
from tourbnt.server.services.deps import CurrentUser, Pagination, SessionDep, StaffUser

logger = get_logger(__name__)

router = APIRouter(tags=["faqs"])


async def _get_faq_or_404(session: AsyncSession, faq_id: str) -> Faq:
    faq = await FaqRepository(session).get_by_id(faq_id)
    if faq is None:
        raise not_found("FAQ not found")
    return faq


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    summary="Create FAQ",
    description="Create a question and answer pair owned by the caller.",
    response_description="The created FAQ.",
    responses={400: {"description": "Missing question or answer"}},
)
async def create_faq(payload: FaqCreate, user: StaffUser, session: SessionDep):
    faq = await FaqRepository(session).create(Faq(question=payload.question, answer=payload.answer, user_id=user.id))
    return success_response(FaqRead.serialize(faq), "FAQ created successfully")


@router.get(
    "/",
    summary="List FAQs",
    description="Admins see every FAQ, other users their own.",
    response_description="Paginated FAQs.",
)
async def list_faqs(user: CurrentUser, session: SessionDep, pagination: Pagination):
    stmt = FaqRepository(session).build_list_query(
        user_id=None if is_admin(user.roles) else user.id,
        sort_by=column_name(pagination.sort_by),
        sort_order=pagination.sort_order,
    )
    return await hybrid_paginate(
        session, stmt, pagination, serializer=FaqRead.serialize, message="FAQs retrieved successfully"
    )


@router.post(
    "/bulk-delete",
    summary="Bulk Delete FAQs",
    description="Delete several FAQs. Each id is reported as deleted or failed with `Not found` or `Forbidden`.",
    response_description="`{success, failed}`",
    responses={400: {"description": "Empty id list"}},
)
async def bulk_delete_faqs(payload: IdsRequest, user: CurrentUser, session: SessionDep):
    if not payload.ids:
        raise bad_request("Please provide an array of FAQ IDs to delete", "INVALID_REQUEST")

    repo = FaqRepository(session)
    result = BulkResult()
    for faq_id in payload.ids:
        faq = await repo.get_by_id(faq_id)
        if faq is None:
            result.fail(faq_id, "Not found")
        elif not is_admin(user.roles) and faq.user_id != user.id:
            result.fail(faq_id, "Forbidden")
        else:
            await repo.delete(faq.id)
            result.success.append(faq_id)

    logger.info(f"Bulk FAQ delete by {user.id}: {len(result.success)} deleted, {len(result.failed)} failed")
    return success_response(result.dump(), f"{len(result.success)} FAQ(s) deleted")


@router.get(
    "/user/{user_id}",
    summary="List FAQs By User",
    description="FAQs owned by one user. Non-admins may only list their own.",
    response_description="Paginated FAQs.",
    responses={403: {"description": "Another user's FAQs"}},
)
async def list_user_faqs(user_id: str, user: CurrentUser, session: SessionDep, pagination: Pagination):
    ensure_owner_or_admin(user, user_id, "You can only view your own FAQs")
    stmt = FaqRepository(session).build_list_query(
        user_id=user_id, sort_by=column_name(pagination.sort_by), sort_order=pagination.sort_order
    )
    return await hybrid_paginate(
        session, stmt, pagination, serializer=FaqRead.serialize, message="FAQs retrieved successfully"
    )


@router.get(
    "/{faq_id}",
    summary="Get FAQ",
    description="Retrieve one FAQ.",
    response_description="The FAQ.",
    responses={404: {"description": "FAQ not found"}},
)
async def get_faq(faq_id: str, user: CurrentUser, session: SessionDep):
    faq = await _get_faq_or_404(session, faq_id)
    ensure_owner_or_admin(user, faq.user_id, "You can only view your own FAQs")
    return success_response(FaqRead.serialize(faq), "FAQ retrieved successfully")


@router.patch(
    "/{faq_id}",
    summary="Update FAQ",
    description="Change the question or answer. Owner or admin only.",
    response_description="The updated FAQ.",
    responses={403: {"description": "Not the owner"}, 404: {"description": "FAQ not found"}},
)
async def update_faq(faq_id: str, payload: FaqUpdate, user: CurrentUser, session: SessionDep):
    faq = await _get_faq_or_404(session, faq_id)
    ensure_owner_or_admin(user, faq.user_id, "You can only update your own FAQs")
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    faq = await FaqRepository(session).apply_changes(faq, changes)
    return success_response(FaqRead.serialize(faq), "FAQ updated successfully")


@router.delete(
    "/{faq_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete FAQ",
    description="Delete one FAQ. Owner or admin only.",
    responses={403: {"description": "Not the owner"}, 404: {"description": "FAQ not found"}},
)
async def delete_faq(faq_id: str, user: CurrentUser, session: SessionDep):
    faq = await _get_faq_or_404(session, faq_id)
    ensure_owner_or_admin(user, faq.user_id, "You can only delete your own FAQs")
    await FaqRepository(session).delete(faq.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
