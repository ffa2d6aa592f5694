"""
Ядро платного доступа (внутренняя библиотека): тарифы, квоты разблокировок, magic links.
HTTP, CRM и почта — внешние коллабораторы; контракт через AccessStore и EventDispatcher.
"""
from app.paywall.access import AccessGate
from app.paywall.errors import (
    AccessError,
    InvalidOrExpired,
    NotAllowed,
    StorageUnavailable,
    ValidationError,
)
from app.paywall.events import DomainEvent, EventDispatcher, emit_event
from app.paywall.magic_link import MagicLinkService
from app.paywall.models import (
    AccessDecision,
    AccessReason,
    IssuedMagicLink,
    Tier,
    TierChangeOutcome,
    TierChangeResult,
    VerificationResult,
)
from app.paywall.onboarding import OnboardingService
from app.paywall.policy import UNLIMITED, TierPolicy, TierQuotas
from app.paywall.tiers import TierService

__all__ = [
    "AccessDecision",
    "AccessError",
    "AccessGate",
    "AccessReason",
    "DomainEvent",
    "EventDispatcher",
    "InvalidOrExpired",
    "IssuedMagicLink",
    "MagicLinkService",
    "NotAllowed",
    "OnboardingService",
    "StorageUnavailable",
    "Tier",
    "TierChangeOutcome",
    "TierChangeResult",
    "TierPolicy",
    "TierQuotas",
    "TierService",
    "UNLIMITED",
    "ValidationError",
    "VerificationResult",
    "emit_event",
]
