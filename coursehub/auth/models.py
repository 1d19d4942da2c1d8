"""Database models for identity and verification.

Cassandra table definitions for:
- users: main user table
- users_by_email: email ownership claims (unique through LWT inserts)
- otp_codes: one pending verification code per email, stored hashed

Note: Uses cassandra-driver directly (not ORM). Tables are created via CQL
statements in the database module.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from coursehub.auth.permissions import InstructorStatus, UserRole, UserStatus


USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    email TEXT,
    name TEXT,
    password_hash TEXT,
    role TEXT,
    status TEXT,
    instructor_status TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

USER_BY_EMAIL_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users_by_email (
    email TEXT PRIMARY KEY,
    user_id UUID
)
"""

OTP_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.otp_codes (
    email TEXT PRIMARY KEY,
    user_id UUID,
    code_hash TEXT,
    attempts INT,
    expires_at TIMESTAMP,
    created_at TIMESTAMP
)
"""

AUTH_TABLES_CQL = [
    USER_TABLE_CQL,
    USER_BY_EMAIL_TABLE_CQL,
    OTP_TABLE_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def normalize_email(email: str) -> str:
    return email.strip().lower()


class User:
    """User entity.

    Attributes:
        id: Unique identifier
        email: Globally unique, lower-cased email
        name: Display name
        password_hash: Argon2id hash (None for federated-only identities)
        role: STUDENT, INSTRUCTOR or ADMIN
        status: PENDING until the email is verified, then ACTIVE
        instructor_status: not_applied, pending, approved or rejected
    """

    def __init__(
        self,
        id: UUID | None = None,
        email: str = "",
        name: str = "",
        password_hash: str | None = None,
        role: str = UserRole.STUDENT.value,
        status: str = UserStatus.PENDING.value,
        instructor_status: str = InstructorStatus.NOT_APPLIED.value,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.email = normalize_email(email)
        self.name = name
        self.password_hash = password_hash
        self.role = role
        self.status = status
        self.instructor_status = instructor_status
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.id,
            email=row.email,
            name=row.name or "",
            password_hash=row.password_hash,
            role=row.role,
            status=row.status,
            instructor_status=row.instructor_status
            or InstructorStatus.NOT_APPLIED.value,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self, include_password: bool = False) -> dict[str, Any]:
        """Convert to dictionary (excludes password_hash by default)."""
        data = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "status": self.status,
            "instructor_status": self.instructor_status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if include_password:
            data["password_hash"] = self.password_hash
        return data

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role}, {self.status})>"


class OtpRecord:
    """Pending verification code for an email (hash only, never the code)."""

    def __init__(
        self,
        email: str,
        user_id: UUID,
        code_hash: str,
        expires_at: datetime,
        created_at: datetime | None = None,
        attempts: int = 0,
    ):
        self.email = normalize_email(email)
        self.user_id = user_id
        self.code_hash = code_hash
        self.attempts = attempts
        self.expires_at = ensure_utc_aware(expires_at)
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at

    @classmethod
    def from_row(cls, row: Any) -> "OtpRecord":
        return cls(
            email=row.email,
            user_id=row.user_id,
            code_hash=row.code_hash,
            expires_at=row.expires_at,
            created_at=row.created_at,
            attempts=row.attempts or 0,
        )
