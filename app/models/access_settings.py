from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer

from app.db.base import Base


class AccessSettings(Base):
    """Global unlock quotas (single row, id=1). Overrides env defaults."""

    __tablename__ = "access_settings"

    id = Column(Integer, primary_key=True, default=1)
    tier1_limit = Column(Integer, nullable=False, default=1)
    tier2_limit = Column(Integer, nullable=False, default=3)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
