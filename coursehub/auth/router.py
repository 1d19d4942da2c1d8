"""Authentication API endpoints.

Provides routes for:
- OTP-gated registration and verification
- Login
- Caller profile and instructor standing (/users)
- Admin user listings (/admin/users)
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from coursehub.auth.dependencies import AdminUser, CurrentUser
from coursehub.auth.permissions import InstructorStatus
from coursehub.auth.schemas import (
    InstructorStatusResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResendOtpRequest,
    TokenResponse,
    UpdateProfileRequest,
    UserListResponse,
    UserResponse,
    VerifyOtpRequest,
)
from coursehub.auth.service import AuthService


router = APIRouter(prefix="/auth", tags=["auth"])
users_router = APIRouter(prefix="/users", tags=["users"])
admin_router = APIRouter(prefix="/admin/users", tags=["admin"])


# ==============================================================================
# Dependency for AuthService
# ==============================================================================

# Module-level reference to be overridden by main.py
_auth_service_getter: Callable[[], AuthService] | None = None


def set_auth_service_getter(getter: Callable[[], AuthService]) -> None:
    """Set the auth service getter function.

    Called by main.py during app initialization.
    """
    global _auth_service_getter  # noqa: PLW0603 - Required for DI pattern
    _auth_service_getter = getter


def get_auth_service() -> AuthService:
    """Get AuthService instance."""
    if _auth_service_getter is None:
        raise RuntimeError(
            "AuthService not configured - call set_auth_service_getter first"
        )
    return _auth_service_getter()


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


# ==============================================================================
# Public Endpoints (No Auth Required)
# ==============================================================================


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    responses={
        400: {"description": "Validation error"},
        409: {"description": "Email already registered and active"},
    },
)
async def register(
    data: RegisterRequest,
    auth_service: AuthServiceDep,
) -> RegisterResponse:
    """Register a new account and email a verification code.

    No token is issued until the email is verified. Requesting the INSTRUCTOR
    role files an instructor application; the account starts as STUDENT.
    """
    return await auth_service.register(data)


@router.post(
    "/verify-otp",
    response_model=TokenResponse,
    summary="Verify email with one-time code",
    responses={
        400: {"description": "Already verified, or code expired"},
        401: {"description": "Invalid code"},
        404: {"description": "User not found"},
        429: {"description": "Too many invalid codes"},
    },
)
async def verify_otp(
    data: VerifyOtpRequest,
    auth_service: AuthServiceDep,
) -> TokenResponse:
    """Activate the account and return a session token."""
    return await auth_service.verify_otp(data.email, data.code)


@router.post(
    "/resend-otp",
    response_model=MessageResponse,
    summary="Resend verification code",
    responses={
        400: {"description": "Already verified"},
        404: {"description": "User not found"},
        429: {"description": "Cooldown active"},
    },
)
async def resend_otp(
    data: ResendOtpRequest,
    auth_service: AuthServiceDep,
) -> MessageResponse:
    await auth_service.resend_otp(data.email)
    return MessageResponse(message="New verification code sent")


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="User login",
    responses={
        401: {"description": "Invalid credentials"},
        403: {"description": "Account not verified"},
    },
)
async def login(
    data: LoginRequest,
    auth_service: AuthServiceDep,
) -> TokenResponse:
    return await auth_service.login(data.email, data.password)


# ==============================================================================
# Authenticated Endpoints
# ==============================================================================


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
)
async def get_me(
    user: CurrentUser,
    auth_service: AuthServiceDep,
) -> UserResponse:
    """Return the stored profile of the caller.

    The role in the token is fixed at issue time; after an instructor
    application is approved, this shows the new role while the caller must
    sign in again for the token to carry it.
    """
    return await auth_service.get_profile(user.id)


@users_router.put(
    "/profile",
    response_model=UserResponse,
    summary="Update my profile",
)
async def update_profile(
    data: UpdateProfileRequest,
    user: CurrentUser,
    auth_service: AuthServiceDep,
) -> UserResponse:
    return await auth_service.update_profile(user.id, data.name)


@users_router.get(
    "/instructor-status",
    response_model=InstructorStatusResponse,
    summary="Get my instructor application standing",
)
async def get_instructor_status(
    user: CurrentUser,
    auth_service: AuthServiceDep,
) -> InstructorStatusResponse:
    return await auth_service.get_instructor_status(user.id)


# ==============================================================================
# Admin Endpoints
# ==============================================================================


@admin_router.get(
    "",
    response_model=UserListResponse,
    summary="List users (admin)",
)
async def list_users(
    _admin: AdminUser,
    auth_service: AuthServiceDep,
    instructor_status: Annotated[
        InstructorStatus | None, Query(description="Only users at this instructor status")
    ] = None,
) -> UserListResponse:
    users = await auth_service.list_users(instructor_status)
    return UserListResponse(
        count=len(users), users=[UserResponse.from_user(u) for u in users]
    )


@admin_router.get(
    "/pending",
    response_model=UserListResponse,
    summary="List users awaiting instructor approval (admin)",
)
async def list_pending_users(
    _admin: AdminUser,
    auth_service: AuthServiceDep,
) -> UserListResponse:
    users = await auth_service.list_users(InstructorStatus.PENDING)
    return UserListResponse(
        count=len(users), users=[UserResponse.from_user(u) for u in users]
    )
