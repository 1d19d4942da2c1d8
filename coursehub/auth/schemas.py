"""Pydantic schemas for authentication.

Request and response models for:
- Registration, verification and login
- Token responses
- User profile, instructor standing and admin listings
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from coursehub.auth.permissions import InstructorStatus, UserRole, UserStatus
from coursehub.auth.validators import validate_password


if TYPE_CHECKING:
    from coursehub.auth.models import User


# ==============================================================================
# Request Schemas
# ==============================================================================


class RegisterRequest(BaseModel):
    """User registration request."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")
    name: str = Field(..., min_length=2, max_length=100, description="Full name")
    requested_role: UserRole = Field(
        UserRole.STUDENT,
        description="STUDENT, or INSTRUCTOR to file an instructor application",
    )

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        result = validate_password(v)
        if not result.valid:
            raise ValueError(result.message or "Invalid password")
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("requested_role")
    @classmethod
    def validate_requested_role(cls, v: UserRole) -> UserRole:
        if v == UserRole.ADMIN:
            msg = "ADMIN role cannot be requested"
            raise ValueError(msg)
        return v


class VerifyOtpRequest(BaseModel):
    """Email verification with a one-time code."""

    email: EmailStr
    code: str = Field(..., pattern=r"^\d{6}$", description="6-digit code")


class ResendOtpRequest(BaseModel):
    email: EmailStr


class LoginRequest(BaseModel):
    """User login request."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, description="Password")


class UpdateProfileRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, description="Full name")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return v.strip()


# ==============================================================================
# Response Schemas
# ==============================================================================


class AuthenticatedUser(BaseModel):
    """Caller identity decoded from the session token."""

    id: UUID
    email: str
    role: UserRole
    status: UserStatus = UserStatus.ACTIVE


class UserResponse(BaseModel):
    """Public user profile."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str
    role: UserRole
    status: UserStatus
    instructor_status: InstructorStatus = InstructorStatus.NOT_APPLIED
    created_at: datetime

    @classmethod
    def from_user(cls, user: "User") -> "UserResponse":
        """Create response from User model."""
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            role=UserRole(user.role),
            status=UserStatus(user.status),
            instructor_status=InstructorStatus(user.instructor_status),
            created_at=user.created_at,
        )


class RegisterResponse(BaseModel):
    """Registration acknowledgement; the token is issued after verification."""

    message: str
    email: str
    status: UserStatus = UserStatus.PENDING


class TokenResponse(BaseModel):
    """Session token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: UserResponse


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str


class InstructorStatusResponse(BaseModel):
    """Where the caller stands on becoming an instructor."""

    is_instructor: bool
    instructor_status: InstructorStatus
    applied_on: datetime | None = Field(
        None, description="When the latest application was filed"
    )


class UserListResponse(BaseModel):
    count: int
    users: list[UserResponse]
