"""Pydantic schemas for outbound email."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class EmailRecipient(BaseModel):
    """Email recipient with optional name."""

    email: EmailStr = Field(..., description="Recipient email address")
    name: str | None = Field(None, description="Recipient display name")


class SendEmailRequest(BaseModel):
    """Request to send an email."""

    to: list[EmailRecipient] = Field(..., min_length=1, max_length=50)
    subject: str = Field(..., min_length=1, max_length=998)
    body_html: str = Field(..., min_length=1)
    body_text: str | None = Field(None, description="Plain text fallback")


class SendEmailResponse(BaseModel):
    """Outcome of a send; failures are reported, never raised."""

    model_config = ConfigDict(from_attributes=True)

    success: bool
    message_id: str | None = None
    error: str | None = None
