"""
Repository layer.

One repository per resource, all built on ``SQLModelRepository`` from ``base``.
"""

from .base import AsyncBaseRepository, QueryBuilder, SQLModelRepository
from .bookings import BookingRepository
from .catalog import CatalogRepository
from .comments import CommentRepository
from .facts import FactRepository
from .faqs import FaqRepository
from .gallery import GalleryRepository
from .notifications import NotificationRepository
from .posts import PostRepository
from .reviews import ReviewRepository
from .subscribers import SubscriberRepository
from .tours import TourRepository
from .users import UserRepository, UserSettingRepository

__all__ = [
    "AsyncBaseRepository",
    "BookingRepository",
    "CatalogRepository",
    "CommentRepository",
    "FactRepository",
    "FaqRepository",
    "GalleryRepository",
    "NotificationRepository",
    "PostRepository",
    "QueryBuilder",
    "ReviewRepository",
    "SQLModelRepository",
    "SubscriberRepository",
    "TourRepository",
    "UserRepository",
    "UserSettingRepository",
]
