from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from app.models.access_settings import AccessSettings
from app.paywall.config import get_default_quotas
from app.paywall.policy import TierQuotas

# Validation limits for unlock quotas
TIER_LIMIT_RANGE = (1, 1000)

LIMIT_KEYS = ("tier1_limit", "tier2_limit")


class AccessSettingsService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self) -> AccessSettings | None:
        return self.db.query(AccessSettings).filter(AccessSettings.id == 1).first()

    def get_or_create(self) -> AccessSettings:
        row = self.get()
        if row:
            return row
        defaults = get_default_quotas()
        row = AccessSettings(id=1, tier1_limit=defaults.tier1, tier2_limit=defaults.tier2)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def get_quotas(self) -> TierQuotas:
        """Quotas for the policy: DB row if present, env defaults otherwise. Never writes."""
        row = self.get()
        if row is None:
            return get_default_quotas()
        defaults = get_default_quotas()
        return TierQuotas(
            tier1=row.tier1_limit or defaults.tier1,
            tier2=row.tier2_limit or defaults.tier2,
        )

    def as_dict(self) -> dict[str, Any]:
        row = self.get_or_create()
        return {
            "tier1_limit": row.tier1_limit,
            "tier2_limit": row.tier2_limit,
            "vip_limit": None,  # unlimited
            "updated_at": row.updated_at.isoformat() if row.updated_at else None,
        }

    def _validate_value(self, key: str, value: Any) -> int | None:
        """Clamp value to allowed range."""
        if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        lo, hi = TIER_LIMIT_RANGE
        return max(lo, min(hi, int(value)))

    def update(self, data: dict[str, Any]) -> dict[str, Any]:
        row = self.get_or_create()
        for key in LIMIT_KEYS:
            if key in data:
                validated = self._validate_value(key, data[key])
                if validated is not None:
                    setattr(row, key, validated)
        row.updated_at = datetime.now(timezone.utc)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return self.as_dict()
