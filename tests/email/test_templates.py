"""Tests for the transactional email templates."""

from datetime import datetime
from decimal import Decimal

from coursehub.email.templates import (
    render_application_decision,
    render_otp_code,
    render_payment_receipt,
)


class TestOtpTemplate:
    def test_renders_code_and_expiry(self) -> None:
        html, text = render_otp_code("Maria Silva", "123456", 10)

        assert "123456" in html
        assert "123456" in text
        assert "10 minutes" in text
        assert "Hi Maria Silva," in text

    def test_user_name_is_escaped_in_html(self) -> None:
        html, _ = render_otp_code("<b>Mallory</b>", "654321", 10)

        assert "<b>Mallory</b>" not in html
        assert "&lt;b&gt;Mallory&lt;/b&gt;" in html

    def test_missing_name_falls_back(self) -> None:
        _, text = render_otp_code("", "000111", 5)

        assert "Hi there," in text

    def test_footer_has_current_year(self) -> None:
        html, text = render_otp_code("Maria", "123456", 10)

        year = str(datetime.now().year)
        assert year in html
        assert text.endswith("This message was sent automatically.")
        assert year in text


class TestApplicationDecisionTemplate:
    def test_approved(self) -> None:
        html, text = render_application_decision("Ada", approved=True)

        assert "You are now an instructor" in html
        assert "Sign in again" in text
        assert "Reason" not in text

    def test_rejected_with_reason(self) -> None:
        html, text = render_application_decision(
            "Ada", approved=False, reason="Missing teaching samples"
        )

        assert "Instructor application update" in html
        assert "Reason: Missing teaching samples" in html
        assert "Reason: Missing teaching samples" in text


class TestReceiptTemplate:
    def test_amount_and_transaction(self) -> None:
        html, text = render_payment_receipt(
            "Sam", "Python & Data", Decimal("49.9"), "USD", "txn_abc123"
        )

        assert "49.90 USD" in html
        assert "49.90 USD" in text
        assert "txn_abc123" in text
        assert "Python &amp; Data" in html
        assert "You are enrolled in Python & Data." in text
