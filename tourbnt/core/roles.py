"""
User roles and role groups.

All role comparisons are case-insensitive.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional, Sequence


class Role(str, Enum):
    ADMIN = "admin"
    SELLER = "seller"
    ADVERTISER = "advertiser"
    GUIDE = "guide"
    VENUE = "venue"
    USER = "user"
    SUBSCRIBER = "subscriber"


ALL_ROLES = tuple(role.value for role in Role)

DASHBOARD_ACCESS = (Role.ADMIN.value, Role.SELLER.value, Role.ADVERTISER.value, Role.GUIDE.value, Role.VENUE.value)
ADMIN_ONLY = (Role.ADMIN.value,)
SELLER_ONLY = (Role.SELLER.value,)
ADMIN_AND_SELLER = (Role.ADMIN.value, Role.SELLER.value)
REGULAR_USERS = (Role.USER.value, Role.SUBSCRIBER.value)

ROLE_GROUPS = {
    "DASHBOARD_ACCESS": DASHBOARD_ACCESS,
    "ADMIN_ONLY": ADMIN_ONLY,
    "SELLER_ONLY": SELLER_ONLY,
    "ADMIN_AND_SELLER": ADMIN_AND_SELLER,
    "REGULAR_USERS": REGULAR_USERS,
    "ALL": ALL_ROLES,
}


def _normalize(roles: Optional[Iterable[str] | str]) -> set[str]:
    if not roles:
        return set()
    if isinstance(roles, str):
        roles = [roles]
    return {r.strip().lower() for r in roles if r}


def is_valid_role(role: Optional[str]) -> bool:
    return bool(role) and role.strip().lower() in ALL_ROLES


def has_role(user_roles: Optional[Iterable[str] | str], role: str) -> bool:
    return role.lower() in _normalize(user_roles)


def has_any_role(user_roles: Optional[Iterable[str] | str], allowed: Sequence[str]) -> bool:
    return bool(_normalize(user_roles) & _normalize(allowed))


def is_admin(user_roles: Optional[Iterable[str] | str]) -> bool:
    return has_role(user_roles, Role.ADMIN.value)


def can_access_dashboard(user_roles: Optional[Iterable[str] | str]) -> bool:
    return has_any_role(user_roles, DASHBOARD_ACCESS)
