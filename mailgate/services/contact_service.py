"""Contact form intake.

Validates and normalizes contact submissions before they are handed to the
support inbox. Delivery itself is handled outside this service; accepted
inquiries are logged with personal data reduced to fingerprints.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from mailgate.core.errors import ValidationAppError
from mailgate.core.logging import hash_for_log
from mailgate.schemas.contact import ContactRequest

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[\r\n<>]")


def sanitize(value: str | None, max_length: int = 200) -> str:
    """Strip header-injection characters, truncate and trim.

    Examples:
        >>> sanitize("Hello\\r\\nBcc: x@y.z", 10)
        'HelloBcc:'
        >>> sanitize(None)
        ''
    """
    if not value:
        return ""
    return _UNSAFE_CHARS.sub("", value)[:max_length].strip()


@dataclass(frozen=True)
class ContactInquiry:
    """Normalized contact submission ready for delivery."""

    display_name: str
    reply_to: str
    subject: str
    company: str
    inquiry_type: str
    message: str


def build_inquiry(payload: ContactRequest) -> ContactInquiry:
    """Validate a submission and normalize its fields.

    Raises:
        ValidationAppError: On a filled honeypot or a blank required field.
    """
    if payload.website and payload.website.strip():
        raise ValidationAppError(code="spam_detected", message="Spam detected")

    for field in ("name", "subject", "message"):
        if not getattr(payload, field).strip():
            raise ValidationAppError(
                code="missing_field",
                message=f"Missing field: {field}",
                details={"field": field},
            )

    return ContactInquiry(
        display_name=sanitize(payload.name, 60) or "Contact",
        reply_to=payload.email.strip(),
        subject=sanitize(payload.subject, 150) or "Contact",
        company=sanitize(payload.company or "-", 120),
        inquiry_type=sanitize(payload.inquiry_type or "general", 40),
        message=payload.message.strip(),
    )


def submit_contact(payload: ContactRequest) -> ContactInquiry:
    inquiry = build_inquiry(payload)
    logger.info(
        "contact.received",
        extra={
            "inquiry_type": inquiry.inquiry_type,
            "reply_to_hash": hash_for_log(inquiry.reply_to.lower()),
            "subject_length": len(inquiry.subject),
            "message_length": len(inquiry.message),
        },
    )
    return inquiry
