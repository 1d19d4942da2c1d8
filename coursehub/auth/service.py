"""Authentication service layer.

Business logic for:
- OTP-gated registration and verification
- Login and session tokens
- Profile edits, instructor standing and the admin user listing
- Verification code resends with a per-email cooldown
- Bootstrap of the configured administrator
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from coursehub.activity.models import ActivityType
from coursehub.auth import otp
from coursehub.auth.models import OtpRecord, User, normalize_email
from coursehub.auth.permissions import InstructorStatus, UserRole, UserStatus
from coursehub.auth.schemas import (
    InstructorStatusResponse,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserResponse,
)
from coursehub.auth.security import create_access_token, hash_password, verify_password
from coursehub.config.settings import Settings, get_settings
from coursehub.core.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    TooManyRequestsError,
    UnauthorizedError,
)
from coursehub.core.logging import get_logger
from coursehub.core.redis import otp_cooldown_key
from coursehub.core.tasks import spawn
from coursehub.instructors.models import InstructorApplication


if TYPE_CHECKING:
    from redis.asyncio import Redis

    from coursehub.activity.service import ActivityService
    from coursehub.auth.repository import OtpRepository, UserRepository
    from coursehub.email.service import EmailService
    from coursehub.instructors.repository import ApplicationRepository


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class EmailAlreadyRegisteredError(ConflictError):
    default_message = "User already exists and is active"
    default_code = "user_exists"


class UserNotFoundError(NotFoundError):
    default_message = "User not found"
    default_code = "user_not_found"


class AlreadyVerifiedError(BadRequestError):
    default_message = "User is already active"
    default_code = "already_verified"


class OtpMissingError(BadRequestError):
    default_message = "No OTP found. Please request a new one."
    default_code = "otp_missing"


class OtpExpiredError(BadRequestError):
    default_message = "OTP has expired. Please request a new one."
    default_code = "otp_expired"


class InvalidOtpError(UnauthorizedError):
    default_message = "Invalid verification code"
    default_code = "invalid_otp"


class OtpAttemptsExceededError(TooManyRequestsError):
    default_message = "Too many invalid codes. Please request a new one."
    default_code = "otp_attempts_exceeded"


class InvalidCredentialsError(UnauthorizedError):
    default_message = "Invalid credentials"
    default_code = "invalid_credentials"


class AccountNotVerifiedError(ForbiddenError):
    default_message = "Account is not verified"
    default_code = "account_not_verified"


class OtpCooldownError(TooManyRequestsError):
    default_code = "otp_cooldown"

    def __init__(self, seconds: int):
        super().__init__(
            f"Please wait {seconds} seconds before requesting another OTP"
        )
        self.seconds = seconds


# ==============================================================================
# Auth Service
# ==============================================================================


class AuthService:
    """Registration, verification and login."""

    def __init__(
        self,
        users: "UserRepository",
        otps: "OtpRepository",
        applications: "ApplicationRepository",
        activity: "ActivityService",
        settings: Settings | None = None,
        email_service: "EmailService | None" = None,
        redis: "Redis | None" = None,
    ):
        self.users = users
        self.otps = otps
        self.applications = applications
        self.activity = activity
        self.settings = settings or get_settings()
        self.email_service = email_service
        self.redis = redis

    # --------------------------------------------------------------------------
    # Tokens
    # --------------------------------------------------------------------------

    def issue_token(self, user: User) -> TokenResponse:
        """Create the session token response for a user."""
        token = create_access_token(
            {
                "sub": str(user.id),
                "email": user.email,
                "role": user.role,
                "status": user.status,
            }
        )
        return TokenResponse(
            access_token=token,
            expires_in=self.settings.auth_access_token_expire_days * 24 * 60 * 60,
            user=UserResponse.from_user(user),
        )

    # --------------------------------------------------------------------------
    # Registration
    # --------------------------------------------------------------------------

    async def register(self, data: RegisterRequest) -> RegisterResponse:
        """Create (or refresh) a PENDING account and send a verification code.

        Raises:
            EmailAlreadyRegisteredError: If the email belongs to an active user
        """
        email = normalize_email(data.email)
        wants_instructor = data.requested_role == UserRole.INSTRUCTOR

        user = await self.users.get_by_email(email)
        if user and user.is_active:
            raise EmailAlreadyRegisteredError

        if user:
            # Unverified re-registration replaces the pending credentials
            user.name = data.name
            user.password_hash = hash_password(data.password)
            if wants_instructor and user.instructor_status == InstructorStatus.NOT_APPLIED.value:
                user.instructor_status = InstructorStatus.PENDING.value
                await self._file_application(user)
            await self.users.save(user)
        else:
            user = User(
                email=email,
                name=data.name,
                password_hash=hash_password(data.password),
                role=UserRole.STUDENT.value,
                status=UserStatus.PENDING.value,
                instructor_status=(
                    InstructorStatus.PENDING.value
                    if wants_instructor
                    else InstructorStatus.NOT_APPLIED.value
                ),
            )
            if not await self.users.create(user):
                # Lost the email claim to a concurrent registration
                raise EmailAlreadyRegisteredError
            if wants_instructor:
                await self._file_application(user)

        await self._issue_otp(user)

        logger.info("user_registered", user_id=str(user.id), instructor=wants_instructor)
        await self.activity.log_activity(
            ActivityType.USER_REGISTERED,
            user.id,
            details={"requested_role": data.requested_role.value},
        )

        return RegisterResponse(message="Verification code sent", email=user.email)

    async def _file_application(self, user: User) -> None:
        application = InstructorApplication(user_id=user.id)
        await self.applications.create(application)
        await self.activity.log_activity(
            ActivityType.INSTRUCTOR_APPLIED,
            user.id,
            details={"application_id": application.id},
        )

    async def _issue_otp(self, user: User) -> None:
        """Store a fresh code (replacing any previous one) and email it."""
        code = otp.generate_otp_code()
        record = OtpRecord(
            email=user.email,
            user_id=user.id,
            code_hash=otp.hash_otp_code(code),
            expires_at=otp.otp_expiry(self.settings.otp_expiry_minutes),
        )
        await self.otps.upsert(record)

        if self.email_service is None:
            logger.info("email_skipped", reason="email_disabled", template="otp_code")
            return

        spawn(
            self.email_service.send_otp_code(
                to=user.email,
                user_name=user.name,
                code=code,
                expiry_minutes=self.settings.otp_expiry_minutes,
            ),
            name="send_otp_code",
        )

    # --------------------------------------------------------------------------
    # Verification
    # --------------------------------------------------------------------------

    async def verify_otp(self, email: str, code: str) -> TokenResponse:
        """Activate an account with its verification code.

        Raises:
            UserNotFoundError: No user with that email
            AlreadyVerifiedError: User is already ACTIVE
            OtpMissingError: No code pending for the email
            OtpExpiredError: Code expired (the code is deleted)
            OtpAttemptsExceededError: Attempt cap reached (the code is deleted)
            InvalidOtpError: Code mismatch, or a concurrent attempt was counted first
        """
        user = await self.users.get_by_email(email)
        if not user:
            raise UserNotFoundError
        if user.is_active:
            raise AlreadyVerifiedError

        record = await self.otps.get(user.email)
        if not record:
            raise OtpMissingError

        if record.is_expired():
            await self.otps.delete(user.email)
            raise OtpExpiredError

        if record.attempts >= otp.MAX_ATTEMPTS:
            await self.otps.delete(user.email)
            raise OtpAttemptsExceededError

        # counted before the check; a lost race leaves the code unchecked
        if not await self.otps.count_attempt(user.email, record.attempts):
            raise InvalidOtpError

        if not otp.verify_otp_code(code, record.code_hash):
            attempts = record.attempts + 1
            logger.warning(
                "otp_mismatch",
                user_id=str(user.id),
                attempts=attempts,
                max_attempts=otp.MAX_ATTEMPTS,
            )
            if attempts >= otp.MAX_ATTEMPTS:
                await self.otps.delete(user.email)
                raise OtpAttemptsExceededError
            raise InvalidOtpError

        await self.users.activate(user)

        logger.info("user_verified", user_id=str(user.id))
        await self.activity.log_activity(ActivityType.USER_VERIFIED, user.id)

        return self.issue_token(user)

    async def resend_otp(self, email: str) -> None:
        """Replace the pending code with a fresh one.

        Raises:
            UserNotFoundError: No user with that email
            AlreadyVerifiedError: User is already ACTIVE
            OtpCooldownError: A code was sent too recently
        """
        user = await self.users.get_by_email(email)
        if not user:
            raise UserNotFoundError
        if user.is_active:
            raise AlreadyVerifiedError

        await self._check_resend_cooldown(user.email)
        await self._issue_otp(user)
        logger.info("otp_resent", user_id=str(user.id))

    async def _check_resend_cooldown(self, email: str) -> None:
        if not self.redis:
            return

        cooldown = self.settings.otp_resend_cooldown_seconds
        key = otp_cooldown_key(email)
        acquired = await self.redis.set(key, "1", nx=True, ex=cooldown)
        if acquired:
            return

        ttl = await self.redis.ttl(key)
        raise OtpCooldownError(ttl if ttl and ttl > 0 else cooldown)

    # --------------------------------------------------------------------------
    # Login / profile
    # --------------------------------------------------------------------------

    async def login(self, email: str, password: str) -> TokenResponse:
        """Authenticate with email and password.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            AccountNotVerifiedError: Credentials are right but the email is unverified
        """
        user = await self.users.get_by_email(email)
        if not user:
            raise InvalidCredentialsError

        is_valid, new_hash = verify_password(password, user.password_hash)
        if not is_valid:
            logger.warning("login_failed", user_id=str(user.id))
            raise InvalidCredentialsError

        if not user.is_active:
            raise AccountNotVerifiedError

        if new_hash:
            user.password_hash = new_hash
            await self.users.save(user)

        logger.info("user_logged_in", user_id=str(user.id), role=user.role)
        await self.activity.log_activity(ActivityType.USER_LOGIN, user.id)

        return self.issue_token(user)

    async def get_profile(self, user_id: UUID) -> UserResponse:
        user = await self.users.get_by_id(user_id)
        if not user:
            raise UserNotFoundError
        return UserResponse.from_user(user)

    async def update_profile(self, user_id: UUID, name: str) -> UserResponse:
        """Rename the caller; role and status columns are left alone."""
        user = await self.users.get_by_id(user_id)
        if not user:
            raise UserNotFoundError
        user.name = name
        await self.users.update_name(user)
        logger.info("profile_updated", user_id=str(user.id))
        return UserResponse.from_user(user)

    async def get_instructor_status(self, user_id: UUID) -> InstructorStatusResponse:
        user = await self.users.get_by_id(user_id)
        if not user:
            raise UserNotFoundError
        applications = await self.applications.list_by_user(user.id)
        return InstructorStatusResponse(
            is_instructor=user.role == UserRole.INSTRUCTOR.value,
            instructor_status=InstructorStatus(user.instructor_status),
            applied_on=applications[0].created_at if applications else None,
        )

    async def list_users(self, instructor_status: InstructorStatus | None = None) -> list[User]:
        """All users newest first, optionally only those at one instructor status."""
        users = await self.users.list_users()
        if instructor_status is not None:
            users = [u for u in users if u.instructor_status == instructor_status.value]
        return sorted(users, key=lambda u: u.created_at, reverse=True)

    async def ensure_admin(self) -> User | None:
        """Create the configured administrator if it does not exist yet."""
        if not self.settings.admin_bootstrap_configured:
            return None

        existing = await self.users.get_by_email(self.settings.admin_email)
        if existing:
            if existing.role != UserRole.ADMIN.value:
                logger.warning(
                    "admin_bootstrap_email_taken",
                    user_id=str(existing.id),
                    role=existing.role,
                )
            return existing

        admin = User(
            email=self.settings.admin_email,
            name=self.settings.admin_name,
            password_hash=hash_password(self.settings.admin_password),
            role=UserRole.ADMIN.value,
            status=UserStatus.ACTIVE.value,
            updated_at=datetime.now(UTC),
        )
        if not await self.users.create(admin):
            return await self.users.get_by_email(self.settings.admin_email)

        logger.info("admin_bootstrapped", user_id=str(admin.id))
        return admin
