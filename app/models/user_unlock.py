from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, String, UniqueConstraint

from app.db.base import Base


class UserUnlock(Base):
    __tablename__ = "user_unlocks"
    __table_args__ = (
        UniqueConstraint("user_email", "content_id", name="uq_user_unlocks_email_content"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_email = Column(String, nullable=False, index=True)
    content_id = Column(String, nullable=False)  # post slug
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
