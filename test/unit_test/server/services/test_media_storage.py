"""
Unit tests for Cloudinary media storage.

The Cloudinary SDK functions are patched; no request leaves the process.
"""

import io
from unittest.mock import patch

import cloudinary.exceptions
import pytest

from tourbnt.core.database.entities.user_settings import UserSetting
from tourbnt.core.security import encrypt_secret
from tourbnt.server.core.config import settings
from tourbnt.server.services.media_storage import (
    DEFAULT_UPLOAD_TARGET,
    CloudinaryCredentials,
    MediaStorage,
    MediaStorageError,
    load_credentials,
    media_item,
    upload_target,
)

CREDENTIALS = CloudinaryCredentials("demo-cloud", "key", "secret")


@pytest.mark.parametrize(
    "media_type,folder,resource_type,collection",
    [
        ("tour-cover", "main/tour-cover/", "image", "images"),
        ("tour-pdf", "main/tour-pdf/", "raw", "pdfs"),
        ("tour-video", "main/tour-video/", "video", "videos"),
    ],
)
def test_upload_targets(media_type, folder, resource_type, collection):
    target = upload_target(media_type)
    assert (target.folder, target.resource_type, target.collection) == (folder, resource_type, collection)


@pytest.mark.parametrize("media_type", [None, "", "banner"])
def test_unknown_media_type_uploads_as_image(media_type):
    assert upload_target(media_type) == DEFAULT_UPLOAD_TARGET


def test_media_item():
    item = media_item(
        {"public_id": "main/a", "secure_url": "https://res/a.jpg", "resource_type": "image", "width": 640},
        "Cover",
        "Lake Bunyonyi",
        ["lake"],
    )
    assert item["url"] == "https://res/a.jpg"
    assert item["width"] == 640
    assert "height" not in item
    assert item["tags"] == ["lake"]
    assert item["uploadedAt"]


class TestLoadCredentials:
    async def test_user_credentials(self, session, seller):
        session.add(
            UserSetting(
                user_id=seller.id,
                cloudinary_cloud="seller-cloud",
                cloudinary_api_key=encrypt_secret("k"),
                cloudinary_api_secret=encrypt_secret("s"),
            )
        )
        await session.commit()
        assert await load_credentials(session, seller.id) == CloudinaryCredentials("seller-cloud", "k", "s")

    async def test_fallback_account(self, session, seller, monkeypatch):
        monkeypatch.setattr(settings, "cloudinary_cloud_name", "shared")
        monkeypatch.setattr(settings, "cloudinary_api_key", "shared-key")
        monkeypatch.setattr(settings, "cloudinary_api_secret", "shared-secret")
        session.add(UserSetting(user_id=seller.id, cloudinary_cloud="half-configured"))
        await session.commit()

        assert await load_credentials(session, seller.id) == CloudinaryCredentials(
            "shared", "shared-key", "shared-secret"
        )

    async def test_none_available(self, session, seller, monkeypatch):
        monkeypatch.setattr(settings, "cloudinary_cloud_name", None)
        assert await load_credentials(session, seller.id) is None


class TestMediaStorage:
    async def test_upload_passes_account_and_folder(self):
        result = {"public_id": "main/tour-pdf/x", "secure_url": "https://res/x.pdf", "resource_type": "raw"}
        with patch("cloudinary.uploader.upload", return_value=result) as mock_upload:
            item = await MediaStorage(CREDENTIALS).upload(
                io.BytesIO(b"%PDF"), upload_target("tour-pdf"), title="Itinerary", tags=["pdf"]
            )

        kwargs = mock_upload.call_args.kwargs
        assert kwargs["folder"] == "main/tour-pdf/"
        assert kwargs["resource_type"] == "raw"
        assert kwargs["cloud_name"] == "demo-cloud"
        assert kwargs["tags"] == ["pdf"]
        assert kwargs["context"] == {"title": "Itinerary", "description": ""}
        assert item["public_id"] == "main/tour-pdf/x"

    async def test_upload_error(self):
        with patch("cloudinary.uploader.upload", side_effect=cloudinary.exceptions.Error("quota")):
            with pytest.raises(MediaStorageError, match="Upload failed: quota"):
                await MediaStorage(CREDENTIALS).upload(io.BytesIO(b"x"), DEFAULT_UPLOAD_TARGET)

    @pytest.mark.parametrize("outcome", ["ok", "not found"])
    async def test_destroy(self, outcome):
        with patch("cloudinary.uploader.destroy", return_value={"result": outcome}) as mock_destroy:
            await MediaStorage(CREDENTIALS).destroy("main/a", "video")
        assert mock_destroy.call_args.kwargs["resource_type"] == "video"

    async def test_destroy_unexpected_result(self):
        with patch("cloudinary.uploader.destroy", return_value={"result": "error"}):
            with pytest.raises(MediaStorageError, match="Delete failed: error"):
                await MediaStorage(CREDENTIALS).destroy("main/a")

    async def test_fetch_error(self):
        with patch("cloudinary.api.resource", side_effect=cloudinary.exceptions.NotFound("gone")):
            with pytest.raises(MediaStorageError, match="Fetch failed"):
                await MediaStorage(CREDENTIALS).fetch("main/a")
