"""Email templates.

Each renderer returns a tuple of (html_content, plain_text_content).
"""

import html
from datetime import datetime
from decimal import Decimal


BASE_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title} - CourseHub</title>
</head>
<body style="margin: 0; padding: 0; background-color: #F6F7F9; font-family: Helvetica, Arial, sans-serif;">
  <table role="presentation" width="100%" cellspacing="0" cellpadding="0">
    <tr>
      <td align="center" style="padding: 32px 16px;">
        <table role="presentation" width="600" cellspacing="0" cellpadding="0"
               style="max-width: 600px; background-color: #FFFFFF; border-radius: 12px;">
          <tr>
            <td style="padding: 32px;">
              {content}
            </td>
          </tr>
          <tr>
            <td style="padding: 16px 32px; font-size: 12px; color: #8E959E;">
              &copy; {year} CourseHub. This message was sent automatically.
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""

FOOTER_TEXT = "---\n© {year} CourseHub. This message was sent automatically."


def _wrap(title: str, content: str) -> str:
    return BASE_TEMPLATE.format(title=title, content=content, year=datetime.now().year)


def _footer() -> str:
    return FOOTER_TEXT.format(year=datetime.now().year)


# ==============================================================================
# Template: Verification Code
# ==============================================================================

OTP_CONTENT = """
<h1 style="margin: 0 0 16px; font-size: 22px; color: #1A1D23;">Verify your email</h1>
<p style="margin: 0 0 24px; font-size: 16px; color: #4B5563;">Hi {user_name},</p>
<p style="margin: 0 0 16px; font-size: 16px; color: #4B5563;">
  Use the code below to activate your account:
</p>
<p style="margin: 0 0 24px; font-size: 32px; letter-spacing: 8px; font-weight: 700; color: #1D4ED8;">
  {code}
</p>
<p style="margin: 0; font-size: 14px; color: #6B7280;">
  The code expires in {expiry_minutes} minutes. If you did not sign up, ignore this email.
</p>
"""


def render_otp_code(user_name: str, code: str, expiry_minutes: int) -> tuple[str, str]:
    """Render the account verification code email."""
    content = OTP_CONTENT.format(
        user_name=html.escape(user_name or "there"),
        code=code,
        expiry_minutes=expiry_minutes,
    )
    plain_text = f"""
Verify your email - CourseHub

Hi {user_name or "there"},

Your verification code: {code}

The code expires in {expiry_minutes} minutes. If you did not sign up, ignore this email.

{_footer()}
"""
    return _wrap("Verify your email", content), plain_text.strip()


# ==============================================================================
# Template: Instructor Application Decision
# ==============================================================================

APPLICATION_APPROVED_CONTENT = """
<h1 style="margin: 0 0 16px; font-size: 22px; color: #1A1D23;">You are now an instructor</h1>
<p style="margin: 0 0 16px; font-size: 16px; color: #4B5563;">Hi {user_name},</p>
<p style="margin: 0; font-size: 16px; color: #4B5563;">
  Your instructor application was approved. Sign in again to start creating courses.
</p>
"""

APPLICATION_REJECTED_CONTENT = """
<h1 style="margin: 0 0 16px; font-size: 22px; color: #1A1D23;">Instructor application update</h1>
<p style="margin: 0 0 16px; font-size: 16px; color: #4B5563;">Hi {user_name},</p>
<p style="margin: 0 0 16px; font-size: 16px; color: #4B5563;">
  Your instructor application was not approved this time.
</p>
<p style="margin: 0; font-size: 14px; color: #991B1B;">Reason: {reason}</p>
"""


def render_application_decision(
    user_name: str, approved: bool, reason: str | None = None
) -> tuple[str, str]:
    """Render the instructor application decision email."""
    if approved:
        content = APPLICATION_APPROVED_CONTENT.format(user_name=html.escape(user_name))
        body = (
            "Your instructor application was approved. "
            "Sign in again to start creating courses."
        )
        title = "You are now an instructor"
    else:
        content = APPLICATION_REJECTED_CONTENT.format(
            user_name=html.escape(user_name), reason=html.escape(reason or "")
        )
        body = f"Your instructor application was not approved this time.\nReason: {reason}"
        title = "Instructor application update"

    plain_text = f"{title} - CourseHub\n\nHi {user_name},\n\n{body}\n\n{_footer()}"
    return _wrap(title, content), plain_text


# ==============================================================================
# Template: Payment Receipt
# ==============================================================================

RECEIPT_CONTENT = """
<h1 style="margin: 0 0 16px; font-size: 22px; color: #1A1D23;">Payment received</h1>
<p style="margin: 0 0 16px; font-size: 16px; color: #4B5563;">Hi {user_name},</p>
<p style="margin: 0 0 24px; font-size: 16px; color: #4B5563;">
  Thanks for your purchase. You are enrolled in <strong>{course_title}</strong>.
</p>
<table role="presentation" cellspacing="0" cellpadding="4" style="font-size: 14px; color: #1A1D23;">
  <tr><td>Amount</td><td><strong>{amount} {currency}</strong></td></tr>
  <tr><td>Transaction</td><td>{transaction_id}</td></tr>
</table>
"""


def render_payment_receipt(
    user_name: str,
    course_title: str,
    amount: Decimal,
    currency: str,
    transaction_id: str,
) -> tuple[str, str]:
    """Render the payment receipt email."""
    content = RECEIPT_CONTENT.format(
        user_name=html.escape(user_name),
        course_title=html.escape(course_title),
        amount=f"{amount:.2f}",
        currency=currency,
        transaction_id=transaction_id,
    )
    plain_text = f"""
Payment received - CourseHub

Hi {user_name},

Thanks for your purchase. You are enrolled in {course_title}.

Amount: {amount:.2f} {currency}
Transaction: {transaction_id}

{_footer()}
"""
    return _wrap("Payment received", content), plain_text.strip()
