"""
Access gate: evaluate_access(email, content_id) -> AccessDecision.
Каждый вызов перечитывает состояние из стора; уникальность (email, content_id)
в хранилище — настоящая защита от гонки, подсчёт квоты лишь ранний выход.
"""
from __future__ import annotations

import logging

from app.paywall.errors import DuplicateGrant
from app.paywall.events import UNLOCK_GRANTED, EventDispatcher, emit_event
from app.paywall.identity import normalize_email, validate_content_id
from app.paywall.models import AccessDecision, AccessReason, Tier
from app.paywall.policy import TierPolicy
from app.storage.base import AccessStore
from app.utils.metrics import access_decisions_total, unlock_grants_total

logger = logging.getLogger(__name__)

_LIMIT_REASONS = {
    Tier.TIER1: AccessReason.TIER1_LIMIT,
    Tier.TIER2: AccessReason.TIER2_LIMIT,
}


class AccessGate:
    def __init__(
        self,
        store: AccessStore,
        policy: TierPolicy,
        dispatcher: EventDispatcher | None = None,
    ) -> None:
        self.store = store
        self.policy = policy
        self.dispatcher = dispatcher

    def evaluate_access(self, email: str, content_id: str) -> AccessDecision:
        """
        Решает, открыт ли контент пользователю.

        - нет записи в allowed_users -> not_allowed (автосоздания нет)
        - vip -> granted без чтения ledger
        - уже разблокировано -> already_unlocked, квота не тратится
        - есть квота -> новая запись в ledger, newly_unlocked
        - иначе tier1_limit / tier2_limit; неизвестный статус -> unknown_status
        """
        email = normalize_email(email)
        content_id = validate_content_id(content_id)
        decision = self._decide(email, content_id)
        access_decisions_total.labels(reason=decision.reason.value).inc()
        return decision

    def _decide(self, email: str, content_id: str) -> AccessDecision:
        record = self.store.get_tier_record(email)
        if record is None:
            return AccessDecision.deny(AccessReason.NOT_ALLOWED)

        tier = Tier.parse(record.tier)
        if tier is None:
            logger.warning(
                "access_unknown_status",
                extra={"email": email, "tier": record.tier, "content_id": content_id},
            )
            return AccessDecision.deny(AccessReason.UNKNOWN_STATUS)

        if tier is Tier.VIP:
            return AccessDecision.grant(AccessReason.VIP)

        if self.store.get_grant(email, content_id) is not None:
            return AccessDecision.grant(AccessReason.ALREADY_UNLOCKED)

        used = self.store.count_grants(email)
        if not self.policy.has_quota_left(tier, used):
            logger.info(
                "access_limit_reached",
                extra={"email": email, "tier": tier.value, "content_id": content_id},
            )
            return AccessDecision.deny(_LIMIT_REASONS[tier])

        try:
            self.store.insert_grant(email, content_id)
        except DuplicateGrant:
            # Concurrent request for the same pair won the insert.
            return AccessDecision.grant(AccessReason.ALREADY_UNLOCKED)

        self.store.increment_unlocks_count(email)
        unlock_grants_total.inc()
        logger.info(
            "access_unlock_granted",
            extra={"email": email, "tier": tier.value, "content_id": content_id},
        )
        emit_event(
            self.dispatcher,
            UNLOCK_GRANTED,
            email,
            {"content_id": content_id, "tier": tier.value, "unlocks_used": used + 1},
        )
        return AccessDecision.grant(AccessReason.NEWLY_UNLOCKED)
