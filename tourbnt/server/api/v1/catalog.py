"""
Global Catalog Endpoints.

Destinations and categories share one moderation workflow, so both routers
are produced by ``build_catalog_router``:

- public browsing of approved items
- admin CRUD and review of seller submissions
- seller submissions, personal lists and favorites
"""

from typing import Any, Dict, List, Optional, Type

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.base import utc_now
from tourbnt.core.database.entities.catalog import Category, Destination
from tourbnt.core.database.repositories import CatalogRepository
from tourbnt.core.database.repositories.catalog import CatalogEntity
from tourbnt.core.errors import bad_request, not_found
from tourbnt.core.logging_config import get_logger
from tourbnt.core.models.io import (
    CategoryCreate,
    CategoryRead,
    CategoryUpdate,
    DestinationCreate,
    DestinationRead,
    DestinationUpdate,
    FavoriteRead,
    ReasonRequest,
)
from tourbnt.core.pagination import FilterSort, filter_sort, hybrid_paginate
from tourbnt.core.responses import success_response
from tourbnt.core.roles import is_admin
from tourbnt.server.services.auth import ensure_owner_or_admin
from tourbnt.server.services.deps import AdminUser, CurrentUser, Pagination, SessionDep, StaffUser

logger = get_logger(__name__)


def build_catalog_router(
    model: Type[CatalogEntity],
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    read_schema,
    label: str,
    lookup_field: str,
) -> APIRouter:
    """Build the router for one catalog table.

    Args:
        model: ``Destination`` or ``Category``
        create_schema: Body of the create and submit routes
        update_schema: Body of the update route
        read_schema: Response schema
        label: Singular display name used in messages, e.g. ``"Destination"``
        lookup_field: Column exposed as ``GET /{lookup_field}/{value}`` (``country`` or ``type``)
    """
    router = APIRouter(tags=[f"{label.lower()} catalog"])
    plural = f"{label[:-1]}ies" if label.endswith("y") else f"{label}s"
    list_filters = filter_sort([lookup_field, "isActive"], ["createdAt", "name"])

    def repo_for(session: AsyncSession) -> CatalogRepository:
        return CatalogRepository(session, model)

    async def get_or_404(session: AsyncSession, item_id: str) -> CatalogEntity:
        item = await repo_for(session).get_by_id(item_id)
        if item is None:
            raise not_found(f"{label} not found")
        return item

    def serialize(item: CatalogEntity, preference=None) -> Dict[str, Any]:
        read = read_schema.model_validate(item)
        if preference is not None:
            read.is_favorite = preference.is_favorite
            read.is_in_list = preference.is_in_list
        return read.dump()

    async def serialize_for(session: AsyncSession, user_id: str, items: List[CatalogEntity]) -> List[Dict[str, Any]]:
        preferences = await repo_for(session).preferences_for(user_id)
        return [serialize(item, preferences.get(item.id)) for item in items]

    # -----------------------------------------------------------------
    # Public browsing
    # -----------------------------------------------------------------

    @router.get(
        "/",
        summary=f"List {plural}",
        description=f"Approved {plural.lower()}. `search` matches name or description.",
        response_description=f"Paginated {plural.lower()}.",
    )
    @router.get("/approved", include_in_schema=False)
    async def list_approved(session: SessionDep, pagination: Pagination, fs: FilterSort = Depends(list_filters)):
        filters: Dict[str, Any] = {lookup_field: fs.filters.get(lookup_field)}
        if "isActive" in fs.filters:
            filters["is_active"] = fs.filters["isActive"].strip().lower() in ("true", "1")
        sort_by, sort_order = fs.resolve(pagination)
        stmt = repo_for(session).build_list_query("approved", filters, fs.search, sort_by, sort_order)
        return await hybrid_paginate(
            session, stmt, pagination, serializer=serialize, message=f"{plural} retrieved successfully"
        )

    @router.get(
        f"/{lookup_field}/{{value}}",
        summary=f"List {plural} By {lookup_field.title()}",
        description=f"Approved {plural.lower()} whose {lookup_field} matches, ignoring case.",
        response_description=f"List of {plural.lower()}.",
    )
    async def list_by_lookup(value: str, session: SessionDep):
        items = await repo_for(session).list_by_column(lookup_field, value)
        return success_response([serialize(item) for item in items], f"{plural} retrieved successfully")

    # -----------------------------------------------------------------
    # Seller lists
    # -----------------------------------------------------------------

    @router.post(
        "/submit",
        status_code=status.HTTP_201_CREATED,
        summary=f"Submit {label}",
        description=f"Sellers submit a {label.lower()} for review; admin submissions are approved at once. "
        "The item is added to the submitter's list.",
        response_description=f"The submitted {label.lower()}.",
    )
    async def submit_item(payload: create_schema, user: StaffUser, session: SessionDep):  # type: ignore[valid-type]
        admin = is_admin(user.roles)
        item = model(
            **payload.model_dump(),
            submitted_by=user.id,
            approval_status="approved" if admin else "pending",
            approved_by=user.id if admin else None,
            approved_at=utc_now() if admin else None,
        )
        repo = repo_for(session)
        item = await repo.create(item)
        preference = await repo.upsert_preference(user.id, item.id, is_in_list=True)
        logger.info(f"{label} {item.id} submitted by {user.id} ({item.approval_status})")
        message = f"{label} created successfully" if admin else f"{label} submitted for approval"
        return success_response(serialize(item, preference), message)

    @router.get(
        "/seller/visible",
        summary=f"List Visible {plural}",
        description=f"Approved {plural.lower()} plus the caller's own submissions, with list and favorite flags.",
        response_description=f"List of {plural.lower()}.",
    )
    async def list_visible(user: CurrentUser, session: SessionDep):
        items = await repo_for(session).list_visible_to(user.id)
        return success_response(await serialize_for(session, user.id, items), f"{plural} retrieved successfully")

    @router.get(
        "/seller/favorites",
        summary=f"List Favorite {plural}",
        description=f"{plural} the caller marked as favorite.",
        response_description=f"List of {plural.lower()}.",
    )
    async def list_favorites(user: CurrentUser, session: SessionDep):
        items = await repo_for(session).list_favorites(user.id)
        return success_response(await serialize_for(session, user.id, items), f"Favorite {plural.lower()} retrieved")

    # -----------------------------------------------------------------
    # Admin review
    # -----------------------------------------------------------------

    @router.get(
        "/admin/pending",
        summary=f"List Pending {plural}",
        description=f"{plural} awaiting review.",
        response_description=f"Paginated pending {plural.lower()}.",
    )
    async def list_pending(admin: AdminUser, session: SessionDep, pagination: Pagination):
        stmt = repo_for(session).build_list_query("pending", sort_by="created_at", sort_order="desc")
        return await hybrid_paginate(
            session, stmt, pagination, serializer=serialize, message=f"Pending {plural.lower()} retrieved"
        )

    @router.put(
        "/admin/{item_id}/approve",
        summary=f"Approve {label}",
        description=f"Approve a submitted {label.lower()}.",
        response_description=f"The approved {label.lower()}.",
        responses={400: {"description": "Already approved"}, 404: {"description": "Not found"}},
    )
    async def approve_item(item_id: str, admin: AdminUser, session: SessionDep):
        item = await get_or_404(session, item_id)
        if item.approval_status == "approved":
            raise bad_request(f"{label} is already approved")
        item = await repo_for(session).set_approval(item, "approved", admin.id)
        return success_response(serialize(item), f"{label} approved successfully")

    @router.put(
        "/admin/{item_id}/reject",
        summary=f"Reject {label}",
        description=f"Reject a submitted {label.lower()} with an optional reason.",
        response_description=f"The rejected {label.lower()}.",
        responses={404: {"description": "Not found"}},
    )
    async def reject_item(
        item_id: str, admin: AdminUser, session: SessionDep, payload: Optional[ReasonRequest] = None
    ):
        item = await get_or_404(session, item_id)
        reason = (payload.reason if payload else None) or "No reason provided"
        item = await repo_for(session).set_approval(item, "rejected", admin.id, reason)
        return success_response(serialize(item), f"{label} rejected")

    # -----------------------------------------------------------------
    # Single item
    # -----------------------------------------------------------------

    @router.post(
        "/",
        status_code=status.HTTP_201_CREATED,
        summary=f"Create {label}",
        description=f"Admins create approved {plural.lower()} directly.",
        response_description=f"The created {label.lower()}.",
        responses={400: {"description": "Missing required fields"}},
    )
    async def create_item(payload: create_schema, admin: AdminUser, session: SessionDep):  # type: ignore[valid-type]
        item = model(
            **payload.model_dump(),
            submitted_by=admin.id,
            approval_status="approved",
            approved_by=admin.id,
            approved_at=utc_now(),
        )
        item = await repo_for(session).create(item)
        return success_response(serialize(item), f"{label} created successfully")

    @router.get(
        "/{item_id}",
        summary=f"Get {label}",
        description=f"Retrieve one {label.lower()}.",
        response_description=f"The {label.lower()}.",
        responses={404: {"description": "Not found"}},
    )
    async def get_item(item_id: str, session: SessionDep):
        return success_response(serialize(await get_or_404(session, item_id)), f"{label} retrieved successfully")

    @router.patch(
        "/{item_id}",
        summary=f"Update {label}",
        description=f"Update a {label.lower()}.",
        response_description=f"The updated {label.lower()}.",
        responses={404: {"description": "Not found"}},
    )
    async def update_item(
        item_id: str, payload: update_schema, admin: AdminUser, session: SessionDep  # type: ignore[valid-type]
    ):
        item = await get_or_404(session, item_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        item = await repo_for(session).apply_changes(item, changes)
        return success_response(serialize(item), f"{label} updated successfully")

    @router.delete(
        "/{item_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary=f"Delete {label}",
        description=f"Delete a {label.lower()} and every seller preference pointing at it.",
        responses={404: {"description": "Not found"}},
    )
    async def delete_item(item_id: str, admin: AdminUser, session: SessionDep):
        item = await get_or_404(session, item_id)
        await repo_for(session).delete_with_preferences(item)
        logger.info(f"{label} {item_id} deleted by {admin.id}")
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.put(
        "/{item_id}/favorite",
        summary="Toggle Favorite",
        description=f"Mark or unmark a {label.lower()} as one of the caller's favorites.",
        response_description="`{isFavorite}`",
        responses={404: {"description": "Not found"}},
    )
    async def toggle_favorite(item_id: str, user: CurrentUser, session: SessionDep):
        item = await get_or_404(session, item_id)
        repo = repo_for(session)
        current = await repo.get_preference(user.id, item.id)
        is_favorite = not (current.is_favorite if current else False)
        await repo.upsert_preference(user.id, item.id, is_favorite=is_favorite)
        message = "Added to favorites" if is_favorite else "Removed from favorites"
        return success_response(FavoriteRead(is_favorite=is_favorite).dump(), message)

    @router.patch(
        "/{item_id}/toggle-active",
        summary="Toggle Active",
        description=f"Flip whether a {label.lower()} is offered. Submitter or admin only.",
        response_description=f"The updated {label.lower()}.",
        responses={403: {"description": "Not the submitter"}, 404: {"description": "Not found"}},
    )
    async def toggle_active(item_id: str, user: CurrentUser, session: SessionDep):
        item = await get_or_404(session, item_id)
        ensure_owner_or_admin(user, item.submitted_by, f"You can only change your own {plural.lower()}")
        item = await repo_for(session).apply_changes(item, {"is_active": not item.is_active})
        return success_response(serialize(item), f"{label} {'activated' if item.is_active else 'deactivated'}")

    @router.post(
        "/{item_id}/add-to-list",
        summary="Add To List",
        description=f"Add an approved {label.lower()} to the caller's list.",
        response_description=f"The {label.lower()} with list flags.",
        responses={400: {"description": "Not approved"}, 404: {"description": "Not found"}},
    )
    async def add_to_list(item_id: str, user: CurrentUser, session: SessionDep):
        item = await get_or_404(session, item_id)
        if item.approval_status != "approved":
            raise bad_request(f"Only approved {plural.lower()} can be added to your list")
        preference = await repo_for(session).upsert_preference(user.id, item.id, is_in_list=True)
        return success_response(serialize(item, preference), f"{label} added to your list")

    @router.post(
        "/{item_id}/remove-from-list",
        summary="Remove From List",
        description=f"Remove a {label.lower()} from the caller's list.",
        response_description=f"The {label.lower()} with list flags.",
        responses={404: {"description": "Not found"}},
    )
    async def remove_from_list(item_id: str, user: CurrentUser, session: SessionDep):
        item = await get_or_404(session, item_id)
        preference = await repo_for(session).upsert_preference(user.id, item.id, is_in_list=False)
        return success_response(serialize(item, preference), f"{label} removed from your list")

    return router


destinations_router = build_catalog_router(
    Destination, DestinationCreate, DestinationUpdate, DestinationRead, "Destination", "country"
)
categories_router = build_catalog_router(Category, CategoryCreate, CategoryUpdate, CategoryRead, "Category", "type")
