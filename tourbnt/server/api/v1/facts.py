"""
Fact Endpoints.

Sellers and admins keep a library of fact definitions that the tour editor
attaches to tours. Renaming a fact, or changing its icon or field type,
updates every tour it was attached to.
"""

from __future__ import annotations

from fastapi import APIRouter, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.entities.facts import Fact
from tourbnt.core.database.repositories import FactRepository, TourRepository
from tourbnt.core.errors import bad_request, not_found
from tourbnt.core.logging_config import get_logger
from tourbnt.core.models.io import BulkResult, FactCreate, FactRead, FactUpdate, IdsRequest
from tourbnt.core.pagination import column_name, hybrid_paginate
from tourbnt.core.responses import success_response
from tourbnt.core.roles import is_admin
from tourbnt.server.services.auth import ensure_owner_or_admin
from tourbnt.server.services.deps import CurrentUser, Pagination, SessionDep, StaffUser

logger = get_logger(__name__)

router = APIRouter(tags=["facts"])


async def _get_fact_or_404(session: AsyncSession, fact_id: str) -> Fact:
    fact = await FactRepository(session).get_by_id(fact_id)
    if fact is None:
        raise not_found("Fact not found")
    return fact


async def _sync_tours(session: AsyncSession, fact: Fact) -> int:
    """Copy the fact's name, icon and field type into every tour using it; returns the tour count."""
    repo = TourRepository(session)
    tours = await repo.using_fact(fact.id)
    for tour in tours:
        facts = [
            {**entry, "title": fact.name, "icon": fact.icon, "fieldType": fact.field_type}
            if entry.get("factId") == fact.id
            else entry
            for entry in tour.facts
        ]
        await repo.apply_changes(tour, {"facts": facts})
    return len(tours)


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    summary="Create Fact",
    description="Create a fact definition owned by the caller.",
    response_description="The created fact.",
    responses={400: {"description": "Missing name"}},
)
async def create_fact(payload: FactCreate, user: StaffUser, session: SessionDep):
    fact = await FactRepository(session).create(Fact(**payload.model_dump(), user_id=user.id))
    return success_response(FactRead.serialize(fact), "Fact created successfully")


@router.get(
    "/",
    summary="List Facts",
    description="Admins see every fact, sellers their own.",
    response_description="Paginated facts.",
)
async def list_facts(user: StaffUser, session: SessionDep, pagination: Pagination):
    stmt = FactRepository(session).build_list_query(
        user_id=None if is_admin(user.roles) else user.id,
        sort_by=column_name(pagination.sort_by),
        sort_order=pagination.sort_order,
    )
    return await hybrid_paginate(
        session, stmt, pagination, serializer=FactRead.serialize, message="Facts retrieved successfully"
    )


@router.delete(
    "/",
    summary="Bulk Delete Facts",
    description="Delete several facts. Each id is reported as deleted or failed with `Not found` or `Forbidden`.",
    response_description="`{success, failed}`",
    responses={400: {"description": "Empty id list"}},
)
async def bulk_delete_facts(payload: IdsRequest, user: StaffUser, session: SessionDep):
    if not payload.ids:
        raise bad_request("Invalid or empty ids array", "INVALID_REQUEST")

    repo = FactRepository(session)
    result = BulkResult()
    for fact_id in payload.ids:
        fact = await repo.get_by_id(fact_id)
        if fact is None:
            result.fail(fact_id, "Not found")
        elif not is_admin(user.roles) and fact.user_id != user.id:
            result.fail(fact_id, "Forbidden")
        else:
            await repo.delete(fact.id)
            result.success.append(fact_id)

    logger.info(f"Bulk fact delete by {user.id}: {len(result.success)} deleted, {len(result.failed)} failed")
    return success_response(result.dump(), f"{len(result.success)} fact(s) deleted")


@router.get(
    "/user/{user_id}",
    summary="List Facts By User",
    description="Facts owned by one user. Non-admins may only list their own.",
    response_description="Paginated facts.",
    responses={403: {"description": "Another user's facts"}},
)
async def list_user_facts(user_id: str, user: CurrentUser, session: SessionDep, pagination: Pagination):
    ensure_owner_or_admin(user, user_id, "You can only view your own facts")
    stmt = FactRepository(session).build_list_query(
        user_id=user_id, sort_by=column_name(pagination.sort_by), sort_order=pagination.sort_order
    )
    return await hybrid_paginate(
        session, stmt, pagination, serializer=FactRead.serialize, message="Facts retrieved successfully"
    )


@router.get(
    "/{fact_id}",
    summary="Get Fact",
    description="Retrieve one fact. Owner or admin only.",
    response_description="The fact.",
    responses={404: {"description": "Fact not found"}},
)
async def get_fact(fact_id: str, user: CurrentUser, session: SessionDep):
    fact = await _get_fact_or_404(session, fact_id)
    ensure_owner_or_admin(user, fact.user_id, "You can only view your own facts")
    return success_response(FactRead.serialize(fact), "Fact retrieved successfully")


@router.patch(
    "/{fact_id}",
    summary="Update Fact",
    description="Change a fact and refresh its label, icon and field type on every tour using it.",
    response_description="`{fact, toursUpdated}`",
    responses={403: {"description": "Not the owner"}, 404: {"description": "Fact not found"}},
)
async def update_fact(fact_id: str, payload: FactUpdate, user: CurrentUser, session: SessionDep):
    fact = await _get_fact_or_404(session, fact_id)
    ensure_owner_or_admin(user, fact.user_id, "Not authorized to update this fact")
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    fact = await FactRepository(session).apply_changes(fact, changes)
    tours_updated = await _sync_tours(session, fact)
    logger.info(f"Fact {fact.id} updated by {user.id}; {tours_updated} tour(s) refreshed")
    return success_response(
        {"fact": FactRead.serialize(fact), "toursUpdated": tours_updated}, "Fact updated successfully"
    )


@router.delete(
    "/{fact_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Fact",
    description="Delete one fact. Tours keep their copy of it.",
    responses={403: {"description": "Not the owner"}, 404: {"description": "Fact not found"}},
)
async def delete_fact(fact_id: str, user: CurrentUser, session: SessionDep):
    fact = await _get_fact_or_404(session, fact_id)
    ensure_owner_or_admin(user, fact.user_id, "Not authorized to delete this fact")
    await FactRepository(session).delete(fact.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
