"""Tests for EmailService.

The Gmail client is never built: ``_get_service`` is patched wherever a send
is expected to reach it.
"""

import base64
from decimal import Decimal
from email import message_from_bytes
from email.message import Message
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from googleapiclient.errors import HttpError

from coursehub.email.schemas import EmailRecipient, SendEmailRequest, SendEmailResponse
from coursehub.email.service import EmailService


@pytest.fixture
def email_service() -> EmailService:
    return EmailService(
        credentials_path="/fake/path.json",
        sender_address="noreply@coursehub.test",
    )


def _decode(message: dict) -> Message:
    return message_from_bytes(base64.urlsafe_b64decode(message["raw"]))


class TestCreateMessage:
    def test_headers_and_parts(self, email_service: EmailService) -> None:
        request = SendEmailRequest(
            to=[
                EmailRecipient(email="sam@example.com", name="Sam"),
                EmailRecipient(email="ada@example.com"),
            ],
            subject="Hello",
            body_html="<p>Hi</p>",
            body_text="Hi",
        )

        parsed = _decode(email_service._create_message(request))

        assert parsed["From"] == "CourseHub <noreply@coursehub.test>"
        assert parsed["To"] == "Sam <sam@example.com>, ada@example.com"
        assert parsed["Subject"] == "Hello"
        assert [p.get_content_type() for p in parsed.get_payload()] == [
            "text/plain",
            "text/html",
        ]

    def test_html_only(self, email_service: EmailService) -> None:
        request = SendEmailRequest(
            to=[EmailRecipient(email="sam@example.com")],
            subject="Hello",
            body_html="<p>Hi</p>",
        )

        parsed = _decode(email_service._create_message(request))

        assert [p.get_content_type() for p in parsed.get_payload()] == ["text/html"]


class TestSendEmail:
    @pytest.mark.asyncio
    async def test_success(self, email_service: EmailService) -> None:
        gmail = MagicMock()
        gmail.users().messages().send().execute.return_value = {"id": "msg123"}

        with patch.object(EmailService, "_get_service", return_value=gmail):
            result = await email_service.send_simple_email(
                to="sam@example.com", subject="Hi", body_html="<p>Hi</p>"
            )

        assert result.success is True
        assert result.message_id == "msg123"

    @pytest.mark.asyncio
    async def test_missing_credentials_is_reported(self, email_service: EmailService) -> None:
        result = await email_service.send_simple_email(
            to="sam@example.com", subject="Hi", body_html="<p>Hi</p>"
        )

        assert result.success is False
        assert "credentials file missing" in result.error

    @pytest.mark.asyncio
    async def test_gmail_error_is_reported(self, email_service: EmailService) -> None:
        gmail = MagicMock()
        gmail.users().messages().send().execute.side_effect = HttpError(
            MagicMock(status=403, reason="Forbidden"), b"denied"
        )

        with patch.object(EmailService, "_get_service", return_value=gmail):
            result = await email_service.send_simple_email(
                to="sam@example.com", subject="Hi", body_html="<p>Hi</p>"
            )

        assert result.success is False
        assert result.error.startswith("Gmail API error")


class TestTransactionalMails:
    @pytest.fixture
    def mocked(self, email_service: EmailService) -> EmailService:
        email_service.send_simple_email = AsyncMock(
            return_value=SendEmailResponse(success=True, message_id="msg123")
        )
        return email_service

    @pytest.mark.asyncio
    async def test_otp_code(self, mocked: EmailService) -> None:
        result = await mocked.send_otp_code("sam@example.com", "Sam", "123456", 10)

        assert result.success is True
        kwargs = mocked.send_simple_email.call_args.kwargs
        assert kwargs["to"] == "sam@example.com"
        assert kwargs["subject"] == "Your CourseHub verification code: 123456"
        assert "123456" in kwargs["body_html"]
        assert kwargs["to_name"] == "Sam"

    @pytest.mark.asyncio
    async def test_application_decision(self, mocked: EmailService) -> None:
        await mocked.send_application_decision(
            "ada@example.com", "Ada", approved=False, reason="Incomplete bio"
        )

        kwargs = mocked.send_simple_email.call_args.kwargs
        assert kwargs["subject"] == "Your instructor application was reviewed"
        assert "Incomplete bio" in kwargs["body_text"]

    @pytest.mark.asyncio
    async def test_payment_receipt(self, mocked: EmailService) -> None:
        await mocked.send_payment_receipt(
            "sam@example.com", "Sam", "Intro to SQL", Decimal("19.00"), "USD", "txn_1"
        )

        kwargs = mocked.send_simple_email.call_args.kwargs
        assert kwargs["subject"] == "Receipt for Intro to SQL"
        assert "19.00 USD" in kwargs["body_text"]
