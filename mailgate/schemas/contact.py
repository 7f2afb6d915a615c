"""Pydantic schemas for the contact form."""

from __future__ import annotations

from pydantic import BaseModel, Field

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class ContactRequest(BaseModel):
    """Contact form submission."""

    name: str = Field(..., min_length=1, max_length=120, description="Sender name.")
    email: str = Field(
        ...,
        max_length=200,
        pattern=EMAIL_PATTERN,
        description="Reply-to address.",
    )
    company: str | None = Field(default=None, max_length=200)
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)
    inquiry_type: str | None = Field(
        default=None,
        max_length=50,
        description="Free-form category such as 'billing' or 'kyc'.",
    )
    website: str | None = Field(
        default=None,
        description="Honeypot field; real users leave it empty.",
    )


class ContactResponse(BaseModel):
    ok: bool = True
