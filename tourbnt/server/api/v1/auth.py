"""
Authentication Endpoints.

Registration, cookie based login/logout, email verification and password
reset. Register, login and logout are rate limited per client IP.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from tourbnt.core.models.io import EmailRequest, LoginRequest, RegisterRequest, ResetPasswordRequest, TokenRequest
from tourbnt.core.responses import success_response
from tourbnt.server.middleware.rate_limit import auth_limiter
from tourbnt.server.services import accounts
from tourbnt.server.services.deps import SessionDep

router = APIRouter(tags=["auth"])


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_limiter)],
    summary="Register",
    description="Create a new account. Accounts are auto-verified in development; otherwise a verification email is sent.",
    response_description="The new user's id and email.",
    responses={
        201: {"description": "Account created"},
        400: {"description": "Missing fields or email already registered"},
        429: {"description": "Too many requests"},
    },
)
async def register(payload: RegisterRequest, session: SessionDep):
    result = await accounts.register_user(session, payload)
    return success_response(result["user"], result["message"])


@router.post(
    "/login",
    dependencies=[Depends(auth_limiter)],
    summary="Login",
    description="Check credentials and set the httpOnly session cookies.",
    response_description="The logged in user's id, roles and email.",
    responses={
        200: {"description": "Logged in"},
        400: {"description": "Invalid credentials"},
        404: {"description": "User not found"},
        429: {"description": "Too many requests"},
    },
)
async def login(payload: LoginRequest, response: Response, session: SessionDep):
    data = await accounts.login_user(session, payload, response)
    return success_response(data, "Login successful")


@router.post(
    "/logout",
    dependencies=[Depends(auth_limiter)],
    summary="Logout",
    description="Clear the session cookies.",
    response_description="Confirmation message.",
)
async def logout(response: Response):
    accounts.logout_user(response)
    return success_response(None, "Logged out successfully")


@router.post(
    "/verify-email",
    summary="Verify Email",
    description="Mark the account behind a verification token as verified.",
    response_description="Confirmation message.",
    responses={400: {"description": "Invalid or expired token"}},
)
async def verify_email(payload: TokenRequest, session: SessionDep):
    user = await accounts.verify_email(session, payload.token)
    return success_response({"id": user.id, "verified": user.verified}, "Email verified successfully")


@router.post(
    "/forgot-password",
    summary="Forgot Password",
    description="Issue a one hour password reset token and mail it to the user. In development the token is returned.",
    response_description="Confirmation message (and the token in development).",
    responses={404: {"description": "User not found"}},
)
async def forgot_password(payload: EmailRequest, session: SessionDep):
    result = await accounts.forgot_password(session, payload.email)
    message = result.pop("message")
    return success_response(result or None, message)


@router.post(
    "/reset-password",
    summary="Reset Password",
    description="Set a new password using a valid, unexpired reset token.",
    response_description="Confirmation message.",
    responses={400: {"description": "Invalid or expired token"}},
)
async def reset_password(payload: ResetPasswordRequest, session: SessionDep):
    await accounts.reset_password(session, payload)
    return success_response(None, "Password has been reset successfully")
