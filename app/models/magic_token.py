from sqlalchemy import Boolean, Column, DateTime, String

from app.db.base import Base


class MagicToken(Base):
    """Latest magic-link token per email; re-issue overwrites the row."""

    __tablename__ = "magic_tokens"

    email = Column(String, primary_key=True)
    token = Column(String, nullable=False)
    issued_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, nullable=False, default=False)
