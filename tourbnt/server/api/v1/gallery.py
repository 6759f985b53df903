"""
Gallery Endpoints.

Uploads go to the caller's Cloudinary account and the returned descriptors
are kept in the caller's gallery row. Media is addressed by its Cloudinary
``public_id``, which may contain slashes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database.entities.gallery import MEDIA_COLLECTIONS, Gallery
from tourbnt.core.database.entities.users import User
from tourbnt.core.database.repositories import GalleryRepository
from tourbnt.core.errors import ApiError, bad_request, not_found
from tourbnt.core.logging_config import get_logger
from tourbnt.core.models.io import BulkResult, IdsRequest, MediaItem, MediaUpdate
from tourbnt.core.models.io.gallery import split_tags
from tourbnt.core.pagination import calculate_pagination_meta
from tourbnt.core.responses import paginated_response, success_response
from tourbnt.core.roles import is_admin
from tourbnt.server.services.deps import Pagination, SessionDep, StaffUser
from tourbnt.server.services.media_storage import (
    COLLECTION_RESOURCE_TYPES,
    MediaStorage,
    MediaStorageError,
    get_media_storage_class,
    load_credentials,
    upload_target,
)

logger = get_logger(__name__)

router = APIRouter(tags=["gallery"])

MISSING_CREDENTIALS = "MISSING_CREDENTIALS"
MEDIA_STORAGE_ERROR = "MEDIA_STORAGE_ERROR"


async def _storage(session: AsyncSession, owner_id: str, storage_class: type, missing_status: int) -> MediaStorage:
    """Storage bound to the Cloudinary account of the gallery owner ``owner_id``."""
    credentials = await load_credentials(session, owner_id)
    if credentials is None:
        raise ApiError(
            missing_status,
            "Cloudinary credentials are not configured. Add them in your settings.",
            MISSING_CREDENTIALS,
        )
    return storage_class(credentials)


async def _locate(session: AsyncSession, user: User, public_id: str) -> Tuple[Gallery, str, MediaItem]:
    """The gallery, collection name and descriptor holding ``public_id``.

    Admins may address any gallery; everyone else only their own.
    """
    repo = GalleryRepository(session)
    if is_admin(user.roles):
        gallery = await repo.find_by_public_id(public_id)
    else:
        gallery = await repo.get_for_user(user.id)
    if gallery is not None:
        name, item = gallery.find_media(public_id)
        if name is not None:
            return gallery, name, item
    raise not_found("Media not found")


@router.get(
    "/",
    summary="List Media",
    description="The caller's media of one type (images, videos or pdfs), newest upload first.",
    response_description="Paginated media descriptors.",
    responses={400: {"description": "Unknown media type"}},
)
async def list_media(
    user: StaffUser,
    session: SessionDep,
    pagination: Pagination,
    media_type: str = Query(default="images", alias="mediaType"),
):
    if media_type not in MEDIA_COLLECTIONS:
        raise bad_request(f"Invalid media type. Must be one of: {', '.join(MEDIA_COLLECTIONS)}")
    gallery = await GalleryRepository(session).get_for_user(user.id)
    items: List[MediaItem] = gallery.collection(media_type) if gallery else []
    items.sort(key=lambda item: item.get("uploadedAt") or "", reverse=True)

    total = len(items)
    if not pagination.fetch_all:
        items = items[pagination.skip : pagination.skip + pagination.limit]
    meta = calculate_pagination_meta(total, pagination.page, "all" if pagination.fetch_all else pagination.limit)
    return paginated_response(items, meta, "Media retrieved successfully")


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    summary="Upload Media",
    description=(
        "Upload a file. `mediaType` picks the folder: tour-cover (image), tour-pdf (raw) "
        "or tour-video (video); anything else is stored as an image."
    ),
    response_description="The stored media descriptor.",
    responses={
        400: {"description": "No file or missing Cloudinary credentials"},
        502: {"description": "Cloudinary rejected the upload"},
    },
)
async def upload_media(
    user: StaffUser,
    session: SessionDep,
    file: Optional[UploadFile] = File(default=None),
    media_type: Optional[str] = Form(default=None, alias="mediaType"),
    title: str = Form(default=""),
    description: str = Form(default=""),
    tags: str = Form(default=""),
    storage_class: type = Depends(get_media_storage_class),
):
    if file is None:
        raise bad_request("No file uploaded")
    storage = await _storage(session, user.id, storage_class, status.HTTP_400_BAD_REQUEST)
    target = upload_target(media_type)
    try:
        item = await storage.upload(file.file, target, title, description, split_tags(tags) or [])
    except MediaStorageError as e:
        logger.error(f"Upload for {user.id} failed: {e}")
        raise ApiError(502, str(e), MEDIA_STORAGE_ERROR) from e

    repo = GalleryRepository(session)
    gallery = await repo.get_or_create(user.id)
    await repo.replace_collection(gallery, target.collection, gallery.collection(target.collection) + [item])
    return success_response(item, "Media uploaded successfully")


@router.delete(
    "/",
    summary="Delete Media",
    description="Delete several media items by public id, at Cloudinary and in the gallery.",
    response_description="`{success, failed}`",
    responses={400: {"description": "Empty id list"}, 410: {"description": "Missing Cloudinary credentials"}},
)
async def delete_media(
    payload: IdsRequest,
    user: StaffUser,
    session: SessionDep,
    storage_class: type = Depends(get_media_storage_class),
):
    if not payload.ids:
        raise bad_request("Please provide an array of media IDs to delete")
    storages: Dict[str, MediaStorage] = {}
    if not is_admin(user.roles):
        storages[user.id] = await _storage(session, user.id, storage_class, status.HTTP_410_GONE)
    repo = GalleryRepository(session)
    result = BulkResult()
    for public_id in payload.ids:
        try:
            gallery, name, _ = await _locate(session, user, public_id)
            storage = storages.get(gallery.user_id)
            if storage is None:
                storage = await _storage(session, gallery.user_id, storage_class, status.HTTP_410_GONE)
                storages[gallery.user_id] = storage
        except ApiError as e:
            result.fail(public_id, e.message)
            continue
        try:
            await storage.destroy(public_id, COLLECTION_RESOURCE_TYPES[name])
        except MediaStorageError as e:
            result.fail(public_id, str(e))
            continue
        remaining = [item for item in gallery.collection(name) if item.get("public_id") != public_id]
        await repo.replace_collection(gallery, name, remaining)
        result.success.append(public_id)

    logger.info(f"Media delete by {user.id}: {len(result.success)} deleted, {len(result.failed)} failed")
    return success_response(result.dump(), f"{len(result.success)} media item(s) deleted")


@router.get(
    "/{media_id:path}",
    summary="Get Media",
    description="A stored media descriptor together with the live Cloudinary resource details.",
    response_description="The media descriptor with `details`.",
    responses={404: {"description": "Media not found"}, 410: {"description": "Missing Cloudinary credentials"}},
)
async def get_media(
    media_id: str,
    user: StaffUser,
    session: SessionDep,
    storage_class: type = Depends(get_media_storage_class),
):
    gallery, name, item = await _locate(session, user, media_id)
    storage = await _storage(session, gallery.user_id, storage_class, status.HTTP_410_GONE)
    try:
        details: Dict[str, Any] = await storage.fetch(media_id, COLLECTION_RESOURCE_TYPES[name])
    except MediaStorageError as e:
        raise ApiError(502, str(e), MEDIA_STORAGE_ERROR) from e
    return success_response({**item, "details": details}, "Media retrieved successfully")


@router.patch(
    "/{media_id:path}",
    summary="Update Media",
    description="Change the title, description or tags of a media item.",
    response_description="The updated media descriptor.",
    responses={404: {"description": "Media not found"}},
)
async def update_media(media_id: str, payload: MediaUpdate, user: StaffUser, session: SessionDep):
    gallery, name, item = await _locate(session, user, media_id)
    updated = {**item, **payload.model_dump(exclude_unset=True, exclude_none=True)}
    items = [updated if entry.get("public_id") == media_id else entry for entry in gallery.collection(name)]
    await GalleryRepository(session).replace_collection(gallery, name, items)
    return success_response(updated, "Media updated successfully")
