"""Email service using the Gmail API with a service account.

The service account needs domain-wide delegation for the
``https://www.googleapis.com/auth/gmail.send`` scope so it can send on behalf
of the configured Workspace sender.
"""

import asyncio
import base64
from decimal import Decimal
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import TYPE_CHECKING

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from coursehub.core.logging import get_logger
from coursehub.email import templates
from coursehub.email.schemas import EmailRecipient, SendEmailRequest, SendEmailResponse


if TYPE_CHECKING:
    from googleapiclient._apis.gmail.v1 import GmailResource


logger = get_logger(__name__)

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.send"]


class EmailService:
    """Sends transactional mail (verification codes, decisions, receipts)."""

    def __init__(
        self,
        credentials_path: str,
        sender_address: str,
        sender_name: str = "CourseHub",
    ):
        self.credentials_path = credentials_path
        self.sender_address = sender_address
        self.sender_name = sender_name
        self._service: GmailResource | None = None

        if not Path(credentials_path).exists():
            logger.warning(
                "email_credentials_not_found",
                path=credentials_path,
                message="Gmail API will not be available",
            )

    def _get_service(self) -> "GmailResource":
        """Build the Gmail client on first use.

        Raises:
            FileNotFoundError: If the credentials file doesn't exist
        """
        if self._service is not None:
            return self._service

        credentials_file = Path(self.credentials_path)
        if not credentials_file.exists():
            msg = f"Credentials file not found: {self.credentials_path}"
            raise FileNotFoundError(msg)

        credentials = service_account.Credentials.from_service_account_file(
            str(credentials_file),
            scopes=GMAIL_SCOPES,
        )
        delegated = credentials.with_subject(self.sender_address)

        self._service = build("gmail", "v1", credentials=delegated, cache_discovery=False)
        logger.info("gmail_service_initialized", sender=self.sender_address)
        return self._service

    @staticmethod
    def _format_address(recipient: EmailRecipient) -> str:
        if recipient.name:
            return f"{recipient.name} <{recipient.email}>"
        return recipient.email

    def _create_message(self, request: SendEmailRequest) -> dict:
        """Encode the request as a Gmail ``raw`` message."""
        message = MIMEMultipart("alternative")
        message["From"] = f"{self.sender_name} <{self.sender_address}>"
        message["To"] = ", ".join(self._format_address(r) for r in request.to)
        message["Subject"] = request.subject

        # Plain text first; clients prefer the last alternative
        if request.body_text:
            message.attach(MIMEText(request.body_text, "plain", "utf-8"))
        message.attach(MIMEText(request.body_html, "html", "utf-8"))

        raw = base64.urlsafe_b64encode(message.as_bytes()).decode("utf-8")
        return {"raw": raw}

    def _send_blocking(self, message: dict) -> dict:
        service = self._get_service()
        return service.users().messages().send(userId="me", body=message).execute()

    async def send_email(self, request: SendEmailRequest) -> SendEmailResponse:
        """Send an email; delivery failures are logged and reported, not raised."""
        recipients = [r.email for r in request.to]
        try:
            message = self._create_message(request)
            result = await asyncio.to_thread(self._send_blocking, message)
        except HttpError as e:
            logger.exception(
                "email_send_failed",
                error=str(e),
                to=recipients,
                subject=request.subject[:50],
            )
            return SendEmailResponse(success=False, error=f"Gmail API error: {e}")
        except FileNotFoundError as e:
            logger.error("email_credentials_missing", error=str(e))
            return SendEmailResponse(
                success=False,
                error="Email service not configured: credentials file missing",
            )
        except Exception as e:
            logger.exception("email_send_unexpected_error", error=str(e))
            return SendEmailResponse(success=False, error=f"Unexpected error: {e!s}")

        logger.info(
            "email_sent",
            message_id=result.get("id"),
            to=recipients,
            subject=request.subject[:50],
        )
        return SendEmailResponse(success=True, message_id=result.get("id"))

    async def send_simple_email(
        self,
        to: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
        to_name: str | None = None,
    ) -> SendEmailResponse:
        request = SendEmailRequest(
            to=[EmailRecipient(email=to, name=to_name)],
            subject=subject,
            body_html=body_html,
            body_text=body_text,
        )
        return await self.send_email(request)

    async def send_otp_code(
        self, to: str, user_name: str, code: str, expiry_minutes: int
    ) -> SendEmailResponse:
        """Send the account verification code."""
        body_html, body_text = templates.render_otp_code(user_name, code, expiry_minutes)
        return await self.send_simple_email(
            to=to,
            subject=f"Your CourseHub verification code: {code}",
            body_html=body_html,
            body_text=body_text,
            to_name=user_name,
        )

    async def send_application_decision(
        self, to: str, user_name: str, approved: bool, reason: str | None = None
    ) -> SendEmailResponse:
        """Tell an applicant whether they became an instructor."""
        body_html, body_text = templates.render_application_decision(
            user_name, approved, reason
        )
        subject = (
            "Your instructor application was approved"
            if approved
            else "Your instructor application was reviewed"
        )
        return await self.send_simple_email(
            to=to,
            subject=subject,
            body_html=body_html,
            body_text=body_text,
            to_name=user_name,
        )

    async def send_payment_receipt(
        self,
        to: str,
        user_name: str,
        course_title: str,
        amount: Decimal,
        currency: str,
        transaction_id: str,
    ) -> SendEmailResponse:
        """Send a receipt for a completed payment."""
        body_html, body_text = templates.render_payment_receipt(
            user_name, course_title, amount, currency, transaction_id
        )
        return await self.send_simple_email(
            to=to,
            subject=f"Receipt for {course_title}",
            body_html=body_html,
            body_text=body_text,
            to_name=user_name,
        )
