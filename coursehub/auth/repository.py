"""Cassandra persistence for users and verification codes."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from cassandra.query import BatchStatement, BatchType

from coursehub.auth.models import OtpRecord, User, normalize_email
from coursehub.auth.permissions import UserStatus
from coursehub.core.pagination import LISTING_PAGE_SIZE


if TYPE_CHECKING:
    from cassandra.cluster import Session


class UserRepository:
    """Users plus the email ownership table that keeps emails unique."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._claim_email = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users_by_email (email, user_id)
            VALUES (?, ?) IF NOT EXISTS
        """)

        self._get_user_id_by_email = self.session.prepare(f"""
            SELECT user_id FROM {self.keyspace}.users_by_email WHERE email = ?
        """)

        self._get_by_id = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.users WHERE id = ?
        """)

        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users
            (id, email, name, password_hash, role, status, instructor_status,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._set_status = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET status = ?, updated_at = ? WHERE id = ?
        """)

        self._set_name = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET name = ?, updated_at = ? WHERE id = ?
        """)

        self._delete_otp = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.otp_codes WHERE email = ?
        """)

        self._list_users = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.users
        """)
        self._list_users.fetch_size = LISTING_PAGE_SIZE

    def _user_params(self, user: User) -> list:
        return [
            user.id,
            user.email,
            user.name,
            user.password_hash,
            user.role,
            user.status,
            user.instructor_status,
            user.created_at,
            user.updated_at,
        ]

    async def get_by_id(self, user_id: UUID) -> User | None:
        result = await self.session.aexecute(self._get_by_id, [user_id])
        row = result.one()
        return User.from_row(row) if row else None

    async def get_by_email(self, email: str) -> User | None:
        result = await self.session.aexecute(
            self._get_user_id_by_email, [normalize_email(email)]
        )
        row = result.one()
        if not row:
            return None
        return await self.get_by_id(row.user_id)

    async def create(self, user: User) -> bool:
        """Insert a new user, claiming its email first.

        Returns:
            False if the email is already owned by another user
        """
        claim = await self.session.aexecute(self._claim_email, [user.email, user.id])
        if not claim.was_applied:
            return False

        await self.session.aexecute(self._insert_user, self._user_params(user))
        return True

    async def save(self, user: User) -> None:
        """Persist every column of an existing user (email never changes)."""
        user.updated_at = datetime.now(UTC)
        await self.session.aexecute(self._insert_user, self._user_params(user))

    async def activate(self, user: User) -> None:
        """Mark the user ACTIVE and drop its verification code in one batch."""
        user.status = UserStatus.ACTIVE.value
        user.updated_at = datetime.now(UTC)

        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._set_status, [user.status, user.updated_at, user.id])
        batch.add(self._delete_otp, [user.email])
        await self.session.aexecute(batch)

    async def update_name(self, user: User) -> None:
        user.updated_at = datetime.now(UTC)
        await self.session.aexecute(self._set_name, [user.name, user.updated_at, user.id])

    async def list_users(self) -> list[User]:
        """Every user; iterating the result set fetches further pages."""
        rows = await self.session.aexecute(self._list_users)
        return [User.from_row(row) for row in rows]


class OtpRepository:
    """One pending verification code per email."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._upsert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.otp_codes
            (email, user_id, code_hash, attempts, expires_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        self._count_attempt = self.session.prepare(f"""
            UPDATE {self.keyspace}.otp_codes SET attempts = ?
            WHERE email = ? IF attempts = ?
        """)

        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.otp_codes WHERE email = ?
        """)

        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.otp_codes WHERE email = ?
        """)

    async def upsert(self, record: OtpRecord) -> None:
        """Store a code, replacing any previous one for the email."""
        await self.session.aexecute(
            self._upsert,
            [
                record.email,
                record.user_id,
                record.code_hash,
                record.attempts,
                record.expires_at,
                record.created_at,
            ],
        )

    async def get(self, email: str) -> OtpRecord | None:
        result = await self.session.aexecute(self._get, [normalize_email(email)])
        row = result.one()
        return OtpRecord.from_row(row) if row else None

    async def delete(self, email: str) -> None:
        await self.session.aexecute(self._delete, [normalize_email(email)])

    async def count_attempt(self, email: str, seen_attempts: int) -> bool:
        """Consume one verification attempt on the pending code.

        Returns:
            False if another attempt was counted since ``seen_attempts`` was read
        """
        result = await self.session.aexecute(
            self._count_attempt,
            [seen_attempts + 1, normalize_email(email), seen_attempts],
        )
        return bool(result.was_applied)
