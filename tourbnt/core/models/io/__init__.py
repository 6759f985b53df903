"""
I/O models for API requests and responses.

These pydantic schemas define the contract between the HTTP API and its
clients. They are kept apart from the database entities so the API can keep
its camelCase field names while columns stay snake_case.

Modules:
- common: camelCase base schema and shared request bodies
- users: authentication, profile, seller application and settings models
- posts: blog post and comment models
- faqs: FAQ and subscriber models
- catalog: destination and category models
- tours: tour and review models
- facts: fact and notification models
- bookings: booking models
- gallery: media update models
"""

from .bookings import (
    BookingCreate,
    BookingRead,
    BookingStatusUpdate,
    ContactInfo,
    Participants,
    PaymentUpdate,
    VoucherRead,
)
from .catalog import (
    CategoryCreate,
    CategoryRead,
    CategoryUpdate,
    DestinationCreate,
    DestinationRead,
    DestinationUpdate,
    FavoriteRead,
)
from .common import BulkResult, CamelModel, IdsRequest, ReasonRequest, UserSummary
from .facts import FactCreate, FactRead, FactUpdate, NotificationRead
from .faqs import FaqCreate, FaqRead, FaqUpdate, SubscriberCreate, SubscriberRead
from .gallery import MediaItem, MediaUpdate
from .posts import (
    Breadcrumb,
    CommentCreate,
    CommentRead,
    CommentThread,
    CommentUpdate,
    LikeResult,
    PostCreate,
    PostDetail,
    PostRead,
    PostUpdate,
)
from .tours import (
    Availability,
    RatingRead,
    ReplyCreate,
    ReviewCreate,
    ReviewRead,
    ReviewStatusUpdate,
    TourCreate,
    TourDetail,
    TourFact,
    TourRead,
    TourUpdate,
)
from .users import (
    EmailRequest,
    LoginRequest,
    PasswordChange,
    ProfileUpdate,
    RegisterRequest,
    ResetPasswordRequest,
    RoleUpdate,
    SellerApplication,
    SellerStatusUpdate,
    SettingKeyRead,
    TokenRequest,
    UserRead,
    UserSettingsRead,
    UserSettingsUpdate,
    UserUpdate,
)

__all__ = [
    "Availability",
    "BookingCreate",
    "BookingRead",
    "BookingStatusUpdate",
    "Breadcrumb",
    "BulkResult",
    "CamelModel",
    "CategoryCreate",
    "CategoryRead",
    "CategoryUpdate",
    "CommentCreate",
    "CommentRead",
    "CommentThread",
    "CommentUpdate",
    "ContactInfo",
    "DestinationCreate",
    "DestinationRead",
    "DestinationUpdate",
    "EmailRequest",
    "FactCreate",
    "FactRead",
    "FactUpdate",
    "FaqCreate",
    "FaqRead",
    "FaqUpdate",
    "FavoriteRead",
    "IdsRequest",
    "LikeResult",
    "LoginRequest",
    "MediaItem",
    "MediaUpdate",
    "NotificationRead",
    "Participants",
    "PasswordChange",
    "PaymentUpdate",
    "PostCreate",
    "PostDetail",
    "PostRead",
    "PostUpdate",
    "ProfileUpdate",
    "RatingRead",
    "ReasonRequest",
    "RegisterRequest",
    "ReplyCreate",
    "ResetPasswordRequest",
    "ReviewCreate",
    "ReviewRead",
    "ReviewStatusUpdate",
    "RoleUpdate",
    "SellerApplication",
    "SellerStatusUpdate",
    "SettingKeyRead",
    "SubscriberCreate",
    "SubscriberRead",
    "TokenRequest",
    "TourCreate",
    "TourDetail",
    "TourFact",
    "TourRead",
    "TourUpdate",
    "UserRead",
    "UserSettingsRead",
    "UserSettingsUpdate",
    "UserSummary",
    "UserUpdate",
    "VoucherRead",
]
