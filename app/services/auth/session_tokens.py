"""
Session tokens handed out after a successful magic-link verification.
Uses itsdangerous for tamper-proof, time-limited tokens (FastAPI Sessions pattern).
"""
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from app.core.config import settings


class SessionTokenService:
    """Signs {"email": ...}; the signature timestamp bounds the session lifetime."""

    def __init__(self, secret: str | None = None, ttl_seconds: int | None = None) -> None:
        self.serializer = URLSafeTimedSerializer(
            secret or settings.session_secret,
            salt="magic-link-session",
        )
        self.ttl_seconds = ttl_seconds or settings.session_ttl_seconds

    def create(self, email: str) -> str:
        return self.serializer.dumps({"email": email})

    def read(self, token: str) -> str | None:
        """Email for a valid session token. None if tampered or expired."""
        try:
            data = self.serializer.loads(token, max_age=self.ttl_seconds)
        except (BadSignature, SignatureExpired):
            return None
        if not isinstance(data, dict):
            return None
        email = data.get("email")
        return email if isinstance(email, str) else None
