"""Payment service layer.

Business logic for:
- Initiating a PENDING payment for a published course at its list price
- Processing the reported outcome (at most once per payment)
- Enrollment on completion and receipt emails
- Revenue statistics for instructors and admins
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from coursehub.activity.models import ActivityType
from coursehub.auth.permissions import UserRole, can_view_course_enrollments, is_admin
from coursehub.config import Settings, get_settings
from coursehub.core.errors import BadRequestError, ForbiddenError, NotFoundError
from coursehub.core.logging import get_logger
from coursehub.core.tasks import spawn
from coursehub.courses.models import CourseStatus
from coursehub.courses.service import CourseNotFoundError
from coursehub.payments.models import Payment, PaymentStatus
from coursehub.payments.schemas import CourseRevenue, PaymentStatsResponse


if TYPE_CHECKING:
    from coursehub.activity.service import ActivityService
    from coursehub.auth.repository import UserRepository
    from coursehub.auth.schemas import AuthenticatedUser
    from coursehub.courses.models import Course
    from coursehub.courses.repository import CourseRepository
    from coursehub.email.service import EmailService
    from coursehub.enrollments.service import EnrollmentService
    from coursehub.payments.repository import PaymentRepository


logger = get_logger(__name__)

_OUTCOME_ACTIVITY = {
    PaymentStatus.COMPLETED: ActivityType.PAYMENT_COMPLETED,
    PaymentStatus.FAILED: ActivityType.PAYMENT_FAILED,
    PaymentStatus.REFUNDED: ActivityType.PAYMENT_REFUNDED,
}


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class PaymentNotFoundError(NotFoundError):
    default_message = "Payment not found"
    default_code = "payment_not_found"


class CourseNotPurchasableError(BadRequestError):
    default_message = "Course is not available for purchase"
    default_code = "course_not_purchasable"


class AmountMismatchError(BadRequestError):
    default_message = "Payment amount does not match the course price"
    default_code = "amount_mismatch"


class PaymentAccessDeniedError(ForbiddenError):
    default_message = "You do not have access to this payment"
    default_code = "payment_access_denied"


# ==============================================================================
# Payment Service
# ==============================================================================


class PaymentService:
    def __init__(
        self,
        payments: "PaymentRepository",
        courses: "CourseRepository",
        users: "UserRepository",
        enrollment_service: "EnrollmentService",
        activity: "ActivityService",
        settings: Settings | None = None,
        email_service: "EmailService | None" = None,
    ):
        self.payments = payments
        self.courses = courses
        self.users = users
        self.enrollment_service = enrollment_service
        self.activity = activity
        self.settings = settings or get_settings()
        self.email_service = email_service

    # --------------------------------------------------------------------------
    # Initiate / process
    # --------------------------------------------------------------------------

    async def initiate(
        self,
        actor: "AuthenticatedUser",
        course_id: UUID,
        amount: Decimal,
        provider: str | None = None,
    ) -> Payment:
        """Create a PENDING payment for a published course.

        Raises:
            CourseNotFoundError: Unknown course
            CourseNotPurchasableError: Course is not PUBLISHED
            AmountMismatchError: ``amount`` differs from the course price
        """
        course = await self.courses.get(course_id)
        if not course:
            raise CourseNotFoundError
        if not course.is_published:
            raise CourseNotPurchasableError
        if Decimal(amount) != Decimal(course.price):
            raise AmountMismatchError

        payment = Payment(
            user_id=actor.id,
            course_id=course.id,
            amount=course.price,
            currency=self.settings.payment_currency,
            provider=provider or self.settings.payment_default_provider,
        )
        await self.payments.create(payment)

        logger.info(
            "payment_initiated",
            payment_id=str(payment.id),
            transaction_id=payment.transaction_id,
            course_id=str(course.id),
        )
        await self.activity.log_activity(
            ActivityType.PAYMENT_INITIATED,
            actor.id,
            course_id=course.id,
            payment_id=payment.id,
            details={"amount": payment.amount, "provider": payment.provider},
        )
        return payment

    async def process(
        self,
        actor: "AuthenticatedUser",
        payment_id: UUID,
        outcome: PaymentStatus,
        external_transaction_id: str | None = None,
    ) -> Payment:
        """Apply the outcome of a pending payment.

        A payment that already reached a terminal status is returned as is, so
        repeated callbacks neither re-enroll nor resend receipts. On COMPLETED
        the payer's enrollment is ensured before the status moves.

        Raises:
            PaymentNotFoundError: Unknown payment
            PaymentAccessDeniedError: Caller is neither the payer nor an admin
            BadRequestError: ``outcome`` is not a terminal status
        """
        if outcome == PaymentStatus.PENDING:
            raise BadRequestError("Payment outcome must be COMPLETED, FAILED or REFUNDED")

        payment = await self.payments.get(payment_id)
        if not payment:
            raise PaymentNotFoundError
        if str(payment.user_id) != str(actor.id) and not is_admin(actor):
            raise PaymentAccessDeniedError

        if payment.is_terminal:
            logger.info(
                "payment_already_processed",
                payment_id=str(payment.id),
                status=payment.status,
            )
            return payment

        now = datetime.now(UTC)
        if outcome == PaymentStatus.COMPLETED:
            enrollment = await self.enrollment_service.ensure_enrollment(
                payment.user_id, payment.course_id
            )
            payment.enrollment_id = enrollment.id
            payment.completed_at = now

        payment.status = outcome.value
        payment.external_transaction_id = (
            external_transaction_id or payment.external_transaction_id
        )
        payment.updated_at = now

        if not await self.payments.transition(payment):
            logger.info("payment_transition_lost", payment_id=str(payment.id))
            return await self.payments.get(payment_id) or payment

        logger.info(
            "payment_processed",
            payment_id=str(payment.id),
            status=payment.status,
        )
        await self.activity.log_activity(
            _OUTCOME_ACTIVITY[outcome],
            actor.id,
            target_user_id=payment.user_id,
            course_id=payment.course_id,
            enrollment_id=payment.enrollment_id,
            payment_id=payment.id,
        )

        if payment.is_completed:
            await self._send_receipt(payment)
        return payment

    async def _send_receipt(self, payment: Payment) -> None:
        if self.email_service is None:
            logger.info("email_skipped", reason="email_disabled", template="payment_receipt")
            return

        user = await self.users.get_by_id(payment.user_id)
        course = await self.courses.get(payment.course_id)
        if not user or not course:
            return

        spawn(
            self.email_service.send_payment_receipt(
                to=user.email,
                user_name=user.name,
                course_title=course.title,
                amount=payment.amount,
                currency=payment.currency,
                transaction_id=payment.transaction_id,
            ),
            name="send_payment_receipt",
        )

    # --------------------------------------------------------------------------
    # Reads
    # --------------------------------------------------------------------------

    async def get_payment(self, actor: "AuthenticatedUser", payment_id: UUID) -> Payment:
        """Visible to the payer, the course owner and admins."""
        payment = await self.payments.get(payment_id)
        if not payment:
            raise PaymentNotFoundError
        if str(payment.user_id) == str(actor.id) or is_admin(actor):
            return payment

        course = await self.courses.get(payment.course_id)
        if course and can_view_course_enrollments(actor, course):
            return payment
        raise PaymentAccessDeniedError

    async def list_my_payments(self, actor: "AuthenticatedUser") -> list[Payment]:
        return await self.payments.list_by_user(actor.id)

    async def list_course_payments(
        self, actor: "AuthenticatedUser", course_id: UUID
    ) -> list[Payment]:
        course = await self.courses.get(course_id)
        if not course:
            raise CourseNotFoundError
        if not can_view_course_enrollments(actor, course):
            raise ForbiddenError("Only the course owner or an admin can view payments")
        return await self.payments.list_by_course(course_id)

    async def _scoped_courses(self, actor: "AuthenticatedUser") -> list["Course"]:
        if actor.role == UserRole.ADMIN:
            courses: list[Course] = []
            for status in CourseStatus:
                courses.extend(await self.courses.list_by_status(status.value))
            return courses
        return await self.courses.list_by_instructor(actor.id)

    async def get_stats(
        self, actor: "AuthenticatedUser", now: datetime | None = None
    ) -> PaymentStatsResponse:
        """Revenue across the caller's courses (every course for admins).

        Only COMPLETED payments count as revenue; the monthly figure covers
        the current calendar month in UTC.
        """
        now = now or datetime.now(UTC)
        total = Decimal("0")
        monthly = Decimal("0")
        counts = dict.fromkeys(PaymentStatus, 0)
        breakdown: list[CourseRevenue] = []

        for course in await self._scoped_courses(actor):
            revenue = Decimal("0")
            completed = 0
            for payment in await self.payments.list_by_course(course.id):
                counts[PaymentStatus(payment.status)] += 1
                if not payment.is_completed:
                    continue
                completed += 1
                revenue += payment.amount
                paid_at = payment.completed_at or payment.updated_at
                if paid_at and (paid_at.year, paid_at.month) == (now.year, now.month):
                    monthly += payment.amount
            total += revenue
            breakdown.append(
                CourseRevenue(
                    course_id=course.id,
                    title=course.title,
                    revenue=revenue,
                    completed_payments=completed,
                )
            )

        breakdown.sort(key=lambda c: c.revenue, reverse=True)
        return PaymentStatsResponse(
            total_revenue=total,
            monthly_revenue=monthly,
            completed_payments=counts[PaymentStatus.COMPLETED],
            pending_payments=counts[PaymentStatus.PENDING],
            failed_payments=counts[PaymentStatus.FAILED],
            courses=breakdown,
        )
