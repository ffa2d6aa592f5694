from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.db.base import Base


class AllowedUser(Base):
    """Tier record: one row per normalized email."""

    __tablename__ = "allowed_users"

    email = Column(String, primary_key=True)  # always lower-cased + trimmed
    status = Column(String, nullable=False, default="tier1")  # tier1 < tier2 < vip
    # Informational; the user_unlocks ledger is authoritative for quota.
    unlocks_count = Column(Integer, nullable=False, default=0)
    source = Column(String, nullable=True)  # inbound, outbound, admin, survey, booking
    founder_led_mql = Column(Boolean, nullable=False, default=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
