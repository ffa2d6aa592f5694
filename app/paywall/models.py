"""
DTO paywall: Tier, AccessDecision, TierChangeResult, IssuedMagicLink, VerificationResult.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Tier(str, Enum):
    """Уровни доступа в порядке возрастания: tier1 < tier2 < vip."""

    TIER1 = "tier1"
    TIER2 = "tier2"
    VIP = "vip"

    @classmethod
    def parse(cls, value: Any) -> Tier | None:
        """Tier from a stored/requested value; None for anything unrecognized."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


TIER_ORDER: tuple[Tier, ...] = (Tier.TIER1, Tier.TIER2, Tier.VIP)


# ----- Решение доступа -----


class AccessReason(str, Enum):
    VIP = "vip"
    ALREADY_UNLOCKED = "already_unlocked"
    NEWLY_UNLOCKED = "newly_unlocked"
    TIER1_LIMIT = "tier1_limit"
    TIER2_LIMIT = "tier2_limit"
    UNKNOWN_STATUS = "unknown_status"
    NOT_ALLOWED = "not_allowed"


class AccessDecision(BaseModel):
    """Результат evaluate_access: granted + причина (для отрисовки upgrade-промпта)."""

    granted: bool
    reason: AccessReason

    model_config = {"frozen": True}

    @classmethod
    def grant(cls, reason: AccessReason) -> AccessDecision:
        return cls(granted=True, reason=reason)

    @classmethod
    def deny(cls, reason: AccessReason) -> AccessDecision:
        return cls(granted=False, reason=reason)


# ----- Смена тарифа -----


class TierChangeOutcome(str, Enum):
    APPLIED = "applied"
    NOOP = "noop"  # requested == current
    REJECTED = "rejected"  # requested < current, nothing written


class TierChangeResult(BaseModel):
    """previous_tier/new_tier отдаются наружу, чтобы вызывающий сам решал про side effects."""

    applied: bool
    outcome: TierChangeOutcome
    previous_tier: str | None = Field(None, description="Stored tier before the call; None for a new user")
    new_tier: str = Field(..., description="Stored tier after the call")

    model_config = {"frozen": True}


# ----- Magic links -----


class IssuedMagicLink(BaseModel):
    email: str
    token: str
    issued_at: datetime
    expires_at: datetime

    model_config = {"frozen": True}


class VerificationResult(BaseModel):
    """Успешная проверка: по email вызывающий создаёт сессию."""

    ok: bool
    email: str

    model_config = {"frozen": True}
