"""
Media storage on Cloudinary.

Every user uploads into their own Cloudinary account: the credentials saved
in their settings are passed to each SDK call instead of configuring the
SDK globally. SDK calls block, so they run in a worker thread.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, BinaryIO, Dict, List, Optional

import cloudinary.api
import cloudinary.exceptions
import cloudinary.uploader
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from tourbnt.core.database.base import utc_now
from tourbnt.core.database.repositories import UserSettingRepository
from tourbnt.core.logging_config import get_logger
from tourbnt.core.security import decrypt_secret
from tourbnt.server.core.config import settings

logger = get_logger(__name__)


@dataclass(frozen=True)
class UploadTarget:
    folder: str
    resource_type: str
    collection: str


UPLOAD_TARGETS: Dict[str, UploadTarget] = {
    "tour-cover": UploadTarget("main/tour-cover/", "image", "images"),
    "tour-pdf": UploadTarget("main/tour-pdf/", "raw", "pdfs"),
    "tour-video": UploadTarget("main/tour-video/", "video", "videos"),
}
DEFAULT_UPLOAD_TARGET = UploadTarget("main/", "image", "images")

COLLECTION_RESOURCE_TYPES = {"images": "image", "videos": "video", "pdfs": "raw"}


def upload_target(media_type: Optional[str]) -> UploadTarget:
    """Upload folder and resource type for a media type; unknown types upload as images."""
    return UPLOAD_TARGETS.get(media_type or "", DEFAULT_UPLOAD_TARGET)


class MediaStorageError(Exception):
    """Raised when Cloudinary rejects a request."""


@dataclass(frozen=True)
class CloudinaryCredentials:
    cloud_name: str
    api_key: str
    api_secret: str

    def as_options(self) -> Dict[str, str]:
        return {"cloud_name": self.cloud_name, "api_key": self.api_key, "api_secret": self.api_secret}


async def load_credentials(session: AsyncSession, user_id: str) -> Optional[CloudinaryCredentials]:
    """Decrypted Cloudinary credentials for ``user_id``.

    Falls back to the server wide account when the user has none configured.
    Returns ``None`` when neither is complete.
    """
    stored = await UserSettingRepository(session).get_for_user(user_id)
    if stored is not None:
        api_key = decrypt_secret(stored.cloudinary_api_key)
        api_secret = decrypt_secret(stored.cloudinary_api_secret)
        if stored.cloudinary_cloud and api_key and api_secret:
            return CloudinaryCredentials(stored.cloudinary_cloud, api_key, api_secret)

    fallback = settings.cloudinary
    if fallback.cloud_name and fallback.api_key and fallback.api_secret:
        return CloudinaryCredentials(fallback.cloud_name, fallback.api_key, fallback.api_secret)
    logger.debug(f"No Cloudinary credentials available for user {user_id}")
    return None


def media_item(result: Dict[str, Any], title: str, description: str, tags: List[str]) -> Dict[str, Any]:
    """Gallery descriptor for a Cloudinary upload result."""
    item = {
        "public_id": result["public_id"],
        "url": result.get("url") or result.get("secure_url"),
        "secure_url": result.get("secure_url"),
        "resource_type": result.get("resource_type"),
        "format": result.get("format"),
        "bytes": result.get("bytes"),
        "title": title,
        "description": description,
        "tags": list(tags),
        "uploadedAt": utc_now().isoformat(),
    }
    for key in ("width", "height"):
        if result.get(key) is not None:
            item[key] = result[key]
    return item


class MediaStorage:
    """Cloudinary operations bound to one account."""

    def __init__(self, credentials: CloudinaryCredentials) -> None:
        self.credentials = credentials

    async def upload(
        self,
        file: BinaryIO,
        target: UploadTarget,
        title: str = "",
        description: str = "",
        tags: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        options = dict(
            folder=target.folder,
            resource_type=target.resource_type,
            context={"title": title, "description": description},
            **self.credentials.as_options(),
        )
        if tags:
            options["tags"] = list(tags)
        try:
            result = await run_in_threadpool(cloudinary.uploader.upload, file, **options)
        except cloudinary.exceptions.Error as e:
            raise MediaStorageError(f"Upload failed: {e}") from e
        logger.info(f"Uploaded {result.get('public_id')} to {target.folder}")
        return media_item(result, title, description, tags or [])

    async def destroy(self, public_id: str, resource_type: str = "image") -> None:
        try:
            result = await run_in_threadpool(
                cloudinary.uploader.destroy,
                public_id,
                resource_type=resource_type,
                **self.credentials.as_options(),
            )
        except cloudinary.exceptions.Error as e:
            raise MediaStorageError(f"Delete failed: {e}") from e
        if result.get("result") not in ("ok", "not found"):
            raise MediaStorageError(f"Delete failed: {result.get('result')}")

    async def fetch(self, public_id: str, resource_type: str = "image") -> Dict[str, Any]:
        try:
            return await run_in_threadpool(
                cloudinary.api.resource,
                public_id,
                resource_type=resource_type,
                **self.credentials.as_options(),
            )
        except cloudinary.exceptions.Error as e:
            raise MediaStorageError(f"Fetch failed: {e}") from e


def get_media_storage_class() -> type:
    """Dependency returning the storage implementation; tests override it."""
    return MediaStorage
