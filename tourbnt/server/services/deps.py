"""
Shared endpoint dependencies.

Annotated aliases keep endpoint signatures short::

    async def handler(user: AdminUser, session: SessionDep) -> ...
"""

from typing import Annotated, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tourbnt.core.database import get_session
from tourbnt.core.database.entities.users import User
from tourbnt.core.pagination import PaginationParams, pagination_params
from tourbnt.core.roles import ADMIN_AND_SELLER, ADMIN_ONLY

from .auth import get_current_user, get_optional_user, require_roles

SessionDep = Annotated[AsyncSession, Depends(get_session)]
CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[Optional[User], Depends(get_optional_user)]
AdminUser = Annotated[User, Depends(require_roles(*ADMIN_ONLY))]
StaffUser = Annotated[User, Depends(require_roles(*ADMIN_AND_SELLER))]
Pagination = Annotated[PaginationParams, Depends(pagination_params)]
