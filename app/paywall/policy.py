"""
Tier policy: pure decisions, no I/O.
Quotas are injected at construction; nothing here reads settings.
"""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from app.paywall.models import TIER_ORDER, Tier


class Quota(Enum):
    UNLIMITED = "unlimited"


UNLIMITED = Quota.UNLIMITED


class TierQuotas(BaseModel):
    """Unlock limits for the finite tiers. vip has no entry: it is always unlimited."""

    tier1: int = Field(1, gt=0)
    tier2: int = Field(3, gt=0)

    model_config = {"frozen": True}


class TierChange(str, Enum):
    UPGRADE = "upgrade"
    NOOP = "noop"
    DOWNGRADE = "downgrade"


def rank(tier: Tier) -> int:
    return TIER_ORDER.index(tier)


class TierPolicy:
    def __init__(self, quotas: TierQuotas | None = None) -> None:
        self.quotas = quotas or TierQuotas()

    def quota_for(self, tier: Tier) -> int | Quota:
        """Unlock limit for a tier. vip -> UNLIMITED, never a number."""
        if tier is Tier.VIP:
            return UNLIMITED
        if tier is Tier.TIER1:
            return self.quotas.tier1
        if tier is Tier.TIER2:
            return self.quotas.tier2
        raise ValueError(f"Unknown tier: {tier!r}")

    def has_quota_left(self, tier: Tier, used: int) -> bool:
        quota = self.quota_for(tier)
        if quota is UNLIMITED:
            return True
        return used < quota

    def classify_change(self, current: Tier | None, requested: Tier) -> TierChange:
        """current=None (new user or unrecognized stored value) ranks below tier1."""
        if current is None:
            return TierChange.UPGRADE
        if rank(requested) > rank(current):
            return TierChange.UPGRADE
        if requested is current:
            return TierChange.NOOP
        return TierChange.DOWNGRADE

    def can_upgrade(self, current: Tier | None, requested: Tier) -> bool:
        return self.classify_change(current, requested) is TierChange.UPGRADE

    def tiers_below(self, tier: Tier) -> list[Tier]:
        """Tiers a record may hold for a write to `tier` to count as an upgrade."""
        return list(TIER_ORDER[: rank(tier)])
