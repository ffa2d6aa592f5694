"""
Ошибки ядра доступа. Только StorageUnavailable имеет смысл повторять на стороне вызывающего.
"""
from __future__ import annotations


class AccessError(Exception):
    """Base class for errors raised by the access core."""

    code = "access_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationError(AccessError):
    """Missing or malformed input (email, content id, token, tier)."""

    code = "validation_error"


class NotAllowed(AccessError):
    """Caller or user is not on the relevant allow-list."""

    code = "not_allowed"


class InvalidOrExpired(AccessError):
    """
    Magic token rejected. Missing record, mismatch, already used and expired
    are deliberately indistinguishable.
    """

    code = "invalid_or_expired"

    def __init__(self, message: str = "Invalid or expired magic link") -> None:
        super().__init__(message)


class StorageUnavailable(AccessError):
    """Transient storage fault. The core never retries on its own."""

    code = "storage_unavailable"


class DuplicateGrant(AccessError):
    """Raised by stores when (email, content_id) already has a grant."""

    code = "duplicate_grant"
