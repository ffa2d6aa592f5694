"""
Email normalization: the only place identity keys are canonicalized.
"""
from __future__ import annotations

from typing import Any

from app.paywall.errors import ValidationError

MAX_EMAIL_LENGTH = 254


def normalize_email(raw: Any) -> str:
    """Trim and lower-case an email; raise ValidationError if it cannot be an address."""
    if not isinstance(raw, str):
        raise ValidationError("Valid email is required")
    email = raw.strip().lower()
    if not email or len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError("Valid email is required")
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain or "@" in domain or any(c.isspace() for c in email):
        raise ValidationError("Valid email is required")
    return email


def validate_content_id(raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("Missing content id")
    return raw
