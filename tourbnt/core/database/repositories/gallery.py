"""
Gallery repository.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.gallery import Gallery
from .base import SQLModelRepository


class GalleryRepository(SQLModelRepository[Gallery]):
    """Repository for per-user media galleries."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Gallery)

    async def get_for_user(self, user_id: str) -> Optional[Gallery]:
        result = await self.session.execute(select(Gallery).where(Gallery.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_or_create(self, user_id: str) -> Gallery:
        gallery = await self.get_for_user(user_id)
        if gallery is None:
            gallery = await self.create(Gallery(user_id=user_id))
        return gallery

    async def replace_collection(self, gallery: Gallery, name: str, items: List[Dict[str, Any]]) -> Gallery:
        """Store a new list for one media collection (images, videos or pdfs)."""
        setattr(gallery, name, list(items))
        return await self.update(gallery)

    async def list_all(self) -> List[Gallery]:
        result = await self.session.execute(select(Gallery).order_by(Gallery.created_at.desc()))
        return list(result.scalars().all())

    async def find_by_public_id(self, public_id: str) -> Optional[Gallery]:
        """Gallery holding the media item ``public_id``.

        Media lists are JSON documents, so the match is done in Python.
        """
        for gallery in await self.list_all():
            name, _ = gallery.find_media(public_id)
            if name is not None:
                return gallery
        return None
