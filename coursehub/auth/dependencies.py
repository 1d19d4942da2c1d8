"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current user extraction from the session token
- Role-based access control
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import ExpiredSignatureError, JWTError

from coursehub.auth.permissions import UserRole, UserStatus
from coursehub.auth.schemas import AuthenticatedUser
from coursehub.auth.security import decode_access_token
from coursehub.core.context import set_user_id


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _identity_from_payload(payload: dict) -> AuthenticatedUser:
    return AuthenticatedUser(
        id=payload["sub"],
        email=payload.get("email", ""),
        role=payload["role"],
        status=payload.get("status", UserStatus.ACTIVE.value),
    )


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthenticatedUser:
    """Get the authenticated caller from the session token.

    Raises:
        HTTPException(401): Distinct details for a missing, expired or invalid token
    """
    if not token:
        raise _unauthorized("Authentication token missing")

    try:
        payload = decode_access_token(token)
        user = _identity_from_payload(payload)
    except ExpiredSignatureError as e:
        raise _unauthorized("Authentication token expired") from e
    except (JWTError, ValueError) as e:
        raise _unauthorized("Invalid authentication token") from e

    set_user_id(user.id)
    return user


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthenticatedUser | None:
    """Get the caller if a valid token is present, None otherwise.

    Used by public endpoints whose output depends on who is asking.
    """
    if not token:
        return None

    try:
        user = _identity_from_payload(decode_access_token(token))
    except (JWTError, ValueError):
        return None

    set_user_id(user.id)
    return user


def require_role(*allowed_roles: UserRole):
    """Create dependency requiring one of the given roles.

    Example:
        @router.get("/admin-only")
        async def admin_endpoint(
            user: Annotated[AuthenticatedUser, Depends(require_role(UserRole.ADMIN))]
        ):
            ...
    """

    async def role_checker(
        user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    ) -> AuthenticatedUser:
        if user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return role_checker


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
OptionalUser = Annotated[AuthenticatedUser | None, Depends(get_current_user_optional)]

AdminUser = Annotated[AuthenticatedUser, Depends(require_role(UserRole.ADMIN))]
InstructorUser = Annotated[AuthenticatedUser, Depends(require_role(UserRole.INSTRUCTOR))]
StaffUser = Annotated[
    AuthenticatedUser, Depends(require_role(UserRole.INSTRUCTOR, UserRole.ADMIN))
]
