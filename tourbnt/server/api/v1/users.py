"""
User Endpoints.

Self service profile and settings (``/me``), the admin user directory, role
changes and the seller application workflow. Login, register and logout are
mirrored from ``/auth`` for older clients.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from tourbnt.core.database.entities.user_settings import UserSetting
from tourbnt.core.database.entities.users import User
from tourbnt.core.database.repositories import UserRepository, UserSettingRepository
from tourbnt.core.errors import ApiError, bad_request, forbidden, not_found
from tourbnt.core.logging_config import get_logger
from tourbnt.core.models.io import (
    LoginRequest,
    PasswordChange,
    ProfileUpdate,
    ReasonRequest,
    RegisterRequest,
    RoleUpdate,
    SellerApplication,
    SellerStatusUpdate,
    SettingKeyRead,
    UserRead,
    UserSettingsRead,
    UserSettingsUpdate,
    UserUpdate,
)
from tourbnt.core.pagination import FilterSort, filter_sort, hybrid_paginate
from tourbnt.core.responses import success_response
from tourbnt.core.roles import is_admin, is_valid_role
from tourbnt.core.security import (
    MASKED_SECRET,
    decrypt_secret,
    encrypt_secret,
    hash_password,
    mask_secret,
    verify_password,
)
from tourbnt.server.middleware.rate_limit import auth_limiter
from tourbnt.server.services import accounts, sellers
from tourbnt.server.services.auth import ensure_owner_or_admin
from tourbnt.server.services.deps import AdminUser, CurrentUser, Pagination, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["users"])

SECRET_SETTINGS = ("cloudinary_api_key", "cloudinary_api_secret", "openai_api_key", "google_api_key")

user_filters = filter_sort(["roles", "sellerStatus"], ["createdAt", "name", "email"])


async def _get_user_or_404(session, user_id: str) -> User:
    user = await UserRepository(session).get_by_id(user_id)
    if user is None:
        raise not_found("User not found")
    return user


def _settings_view(stored: Optional[UserSetting]) -> dict:
    if stored is None:
        return UserSettingsRead().dump()
    view = UserSettingsRead(cloudinary_cloud=stored.cloudinary_cloud)
    for name in SECRET_SETTINGS:
        setattr(view, name, mask_secret(getattr(stored, name)))
    return view.dump()


# =====================================================================
# Legacy auth mirrors
# =====================================================================


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_limiter)],
    summary="Register (legacy)",
    description="Same as POST /auth/register.",
    deprecated=True,
)
async def register(payload: RegisterRequest, session: SessionDep):
    result = await accounts.register_user(session, payload)
    return success_response(result["user"], result["message"])


@router.post(
    "/login",
    dependencies=[Depends(auth_limiter)],
    summary="Login (legacy)",
    description="Same as POST /auth/login.",
    deprecated=True,
)
async def login(payload: LoginRequest, response: Response, session: SessionDep):
    return success_response(await accounts.login_user(session, payload, response), "Login successful")


@router.post(
    "/logout",
    dependencies=[Depends(auth_limiter)],
    summary="Logout (legacy)",
    description="Same as POST /auth/logout.",
    deprecated=True,
)
async def logout(response: Response):
    accounts.logout_user(response)
    return success_response(None, "Logged out successfully")


# =====================================================================
# Current user
# =====================================================================


@router.get(
    "/me",
    summary="Get Current User",
    description="Profile of the authenticated user, including the derived seller status.",
    response_description="The user without password or tokens.",
    responses={401: {"description": "Not authenticated"}},
)
async def get_me(user: CurrentUser):
    return success_response(UserRead.serialize(user), "User retrieved successfully")


@router.patch(
    "/me",
    summary="Update Current User",
    description="Update the authenticated user's name, phone and avatar.",
    response_description="The updated user.",
)
async def update_me(payload: ProfileUpdate, user: CurrentUser, session: SessionDep):
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    user = await UserRepository(session).apply_changes(user, changes)
    return success_response(UserRead.serialize(user), "Profile updated successfully")


@router.patch(
    "/me/password",
    summary="Change Password",
    description="Change the password after checking the current one.",
    response_description="Confirmation message.",
    responses={400: {"description": "Current password is incorrect"}},
)
async def change_password(payload: PasswordChange, user: CurrentUser, session: SessionDep):
    if not verify_password(payload.current_password, user.password):
        raise bad_request("Current password is incorrect")
    await UserRepository(session).apply_changes(user, {"password": hash_password(payload.new_password)})
    return success_response(None, "Password changed successfully")


@router.get(
    "/me/settings",
    summary="Get Settings",
    description="Stored integration settings; API keys are masked.",
    response_description="Settings with masked secrets.",
)
async def get_settings(user: CurrentUser, session: SessionDep):
    stored = await UserSettingRepository(session).get_for_user(user.id)
    return success_response(_settings_view(stored), "Settings retrieved successfully")


@router.patch(
    "/me/settings",
    summary="Update Settings",
    description="Create or update integration settings. Secrets are encrypted at rest; masked values are ignored.",
    response_description="Settings with masked secrets.",
)
async def update_settings(payload: UserSettingsUpdate, user: CurrentUser, session: SessionDep):
    repo = UserSettingRepository(session)
    stored = await repo.get_for_user(user.id)
    if stored is None:
        stored = UserSetting(user_id=user.id)

    changes = payload.model_dump(exclude_unset=True)
    if "cloudinary_cloud" in changes:
        stored.cloudinary_cloud = changes["cloudinary_cloud"] or None
    for name in SECRET_SETTINGS:
        if name not in changes or changes[name] == MASKED_SECRET:
            continue
        setattr(stored, name, encrypt_secret(changes[name]))

    stored = await repo.update(stored)
    logger.info(f"Settings updated for user {user.id}: {sorted(changes)}")
    return success_response(_settings_view(stored), "Settings updated successfully")


@router.get(
    "/me/settings/key",
    summary="Get Decrypted Key",
    description="Return one stored secret in clear text.",
    response_description="The key type and its decrypted value.",
    responses={400: {"description": "Unknown key type"}},
)
async def get_setting_key(
    user: CurrentUser,
    session: SessionDep,
    key_type: str = Query(alias="keyType", description=f"One of {', '.join(SECRET_SETTINGS)}"),
):
    if key_type not in SECRET_SETTINGS:
        raise bad_request(f"Invalid key type: {key_type}")
    stored = await UserSettingRepository(session).get_for_user(user.id)
    value = decrypt_secret(getattr(stored, key_type)) if stored else None
    return success_response(SettingKeyRead(key_type=key_type, value=value).dump(), "Key retrieved successfully")


# =====================================================================
# Seller applications
# =====================================================================


@router.post(
    "/seller/apply",
    summary="Apply As Seller",
    description="Submit or resubmit a seller application for the authenticated user.",
    response_description="The user with the stored application.",
    responses={400: {"description": "Missing fields or already approved"}},
)
async def apply_as_seller(payload: SellerApplication, user: CurrentUser, session: SessionDep):
    user = await sellers.apply(session, user, payload)
    return success_response(
        UserRead.serialize(user), "Seller application submitted successfully. It will be reviewed by our team."
    )


@router.get(
    "/seller-applications",
    summary="List Seller Applications",
    description="Users with a pending or rejected seller application.",
    response_description="List of applicants.",
)
async def list_seller_applications(admin: AdminUser, session: SessionDep):
    applicants = await UserRepository(session).list_seller_applications()
    return success_response([UserRead.serialize(u) for u in applicants], "Seller applications retrieved successfully")


@router.patch(
    "/{user_id}/approve-seller",
    summary="Approve Seller",
    description="Approve a seller application and grant the seller role.",
    response_description="The updated user.",
    responses={400: {"description": "No application or already approved"}, 404: {"description": "User not found"}},
)
async def approve_seller(user_id: str, admin: AdminUser, session: SessionDep):
    user = await sellers.approve(session, await _get_user_or_404(session, user_id))
    return success_response(UserRead.serialize(user), "Seller application approved successfully")


@router.patch(
    "/{user_id}/reject-seller",
    summary="Reject Seller",
    description="Reject a seller application with an optional reason.",
    response_description="The updated user.",
)
async def reject_seller(user_id: str, admin: AdminUser, session: SessionDep, payload: Optional[ReasonRequest] = None):
    reason = payload.reason if payload else None
    user = await sellers.reject(session, await _get_user_or_404(session, user_id), reason)
    return success_response(UserRead.serialize(user), "Seller application rejected")


@router.patch(
    "/{user_id}/seller-status",
    summary="Set Seller Status",
    description="Approve or reject through a single endpoint.",
    response_description="The updated user.",
    responses={400: {"description": "Invalid status"}},
)
async def set_seller_status(user_id: str, payload: SellerStatusUpdate, admin: AdminUser, session: SessionDep):
    if payload.status == "approved":
        return await approve_seller(user_id, admin, session)
    if payload.status == "rejected":
        return await reject_seller(user_id, admin, session, ReasonRequest(reason=payload.reason))
    raise ApiError(400, "Invalid status. Must be 'approved' or 'rejected'", "INVALID_STATUS")


@router.delete(
    "/{user_id}/delete-seller",
    summary="Delete Seller Application",
    description="Remove the seller application and reset the role to user.",
    response_description="Confirmation message.",
)
async def delete_seller(user_id: str, admin: AdminUser, session: SessionDep):
    await sellers.delete_application(session, await _get_user_or_404(session, user_id))
    return success_response(None, "Seller application deleted successfully. User converted to normal user.")


# =====================================================================
# User directory
# =====================================================================


@router.get(
    "/",
    summary="List Users",
    description="Paginated user list. Filters: roles, sellerStatus, search (name or email). Sort: createdAt, name, email.",
    response_description="Paginated users.",
)
async def list_users(
    admin: AdminUser,
    session: SessionDep,
    pagination: Pagination,
    fs: FilterSort = Depends(user_filters),
):
    filters = {"roles": fs.filters.get("roles"), "seller_status": fs.filters.get("sellerStatus")}
    sort_by, sort_order = fs.resolve(pagination)
    stmt = UserRepository(session).build_list_query(filters, fs.search, sort_by, sort_order)
    return await hybrid_paginate(
        session, stmt, pagination, serializer=UserRead.serialize, message="Users retrieved successfully"
    )


@router.get(
    "/{user_id}",
    summary="Get User",
    description="Retrieve any user by id.",
    response_description="The user.",
    responses={404: {"description": "User not found"}},
)
async def get_user(user_id: str, admin: AdminUser, session: SessionDep):
    return success_response(UserRead.serialize(await _get_user_or_404(session, user_id)), "User retrieved successfully")


@router.patch(
    "/{user_id}",
    summary="Update User",
    description="Update a user. Owners may edit their own profile; only admins may change roles.",
    response_description="The updated user.",
    responses={403: {"description": "Not the owner"}, 404: {"description": "User not found"}},
)
async def update_user(user_id: str, payload: UserUpdate, user: CurrentUser, session: SessionDep):
    target = await _get_user_or_404(session, user_id)
    ensure_owner_or_admin(user, target.id, "You cannot update other users.")
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "roles" in changes:
        if not is_admin(user.roles):
            raise forbidden("Only admins can change roles")
        if not is_valid_role(changes["roles"]):
            raise bad_request(f"Invalid role: {changes['roles']}")
        changes["roles"] = changes["roles"].strip().lower()
    target = await UserRepository(session).apply_changes(target, changes)
    return success_response(UserRead.serialize(target), "User updated successfully")


@router.patch(
    "/{user_id}/role",
    summary="Change Role",
    description="Set a user's role.",
    response_description="The updated user.",
    responses={400: {"description": "Invalid role"}},
)
async def change_role(user_id: str, payload: RoleUpdate, admin: AdminUser, session: SessionDep):
    if not is_valid_role(payload.role):
        raise bad_request(f"Invalid role: {payload.role}")
    target = await _get_user_or_404(session, user_id)
    target = await UserRepository(session).apply_changes(target, {"roles": payload.role.strip().lower()})
    return success_response(UserRead.serialize(target), "User role updated successfully")


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete User",
    description="Delete an account. Owners may delete themselves; admins may delete anyone.",
    responses={403: {"description": "Not the owner"}, 404: {"description": "User not found"}},
)
async def delete_user(user_id: str, user: CurrentUser, session: SessionDep):
    target = await _get_user_or_404(session, user_id)
    ensure_owner_or_admin(user, target.id, "You cannot delete other users.")
    await UserRepository(session).delete(target.id)
    logger.info(f"User {target.id} deleted by {user.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
