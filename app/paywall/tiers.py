"""
Tier transitions with downgrade protection, plus parsers for the webhooks that drive them.
"""
from __future__ import annotations

import logging
from typing import Any

from app.paywall.errors import StorageUnavailable, ValidationError
from app.paywall.events import TIER_CHANGED, USER_REGISTERED, EventDispatcher, emit_event
from app.paywall.identity import normalize_email
from app.paywall.models import Tier, TierChangeOutcome, TierChangeResult
from app.paywall.policy import TierChange, TierPolicy
from app.storage.base import AccessStore, TierRecord
from app.utils.metrics import tier_changes_total

logger = logging.getLogger(__name__)


class TierService:
    def __init__(
        self,
        store: AccessStore,
        policy: TierPolicy,
        dispatcher: EventDispatcher | None = None,
    ) -> None:
        self.store = store
        self.policy = policy
        self.dispatcher = dispatcher

    def request_tier_change(
        self,
        email: str,
        requested_tier: Tier | str,
        *,
        source: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> TierChangeResult:
        """
        Raise a user's tier. Equal tier -> noop, lower tier -> rejected without a write.
        An unknown email is created directly at the requested tier.
        Unlock history is never touched.
        """
        email = normalize_email(email)
        requested = Tier.parse(requested_tier)
        if requested is None:
            raise ValidationError(f"Unknown tier: {requested_tier!r}")

        record = self.store.get_tier_record(email)
        if record is None:
            if self.store.insert_tier_record(email, requested.value, source=source):
                return self._applied(email, None, requested, source, details)
            record = self.store.get_tier_record(email)
            if record is None:
                raise StorageUnavailable("tier record missing after concurrent insert")

        change = self.policy.classify_change(Tier.parse(record.tier), requested)
        if change is not TierChange.UPGRADE:
            return self._not_applied(email, record, requested)

        from_tiers = [t.value for t in self.policy.tiers_below(requested)]
        if record.tier not in from_tiers:
            # Non-canonical ("TIER1") or unrecognized stored value: match it exactly.
            from_tiers.append(record.tier)
        if self.store.upgrade_tier(email, requested.value, from_tiers):
            return self._applied(email, record.tier, requested, source, details)

        # Someone else changed the tier between our read and write.
        fresh = self.store.get_tier_record(email)
        return self._not_applied(email, fresh or record, requested)

    def ensure_registered(
        self,
        email: str,
        *,
        source: str | None = "inbound",
        founder_led_mql: bool = False,
    ) -> TierRecord:
        """
        Invite provisioning: create the record at tier1 if absent.
        Existing users keep their tier (no downgrade on re-invite).
        """
        email = normalize_email(email)
        created = self.store.insert_tier_record(
            email,
            Tier.TIER1.value,
            source=source,
            founder_led_mql=founder_led_mql,
        )
        if created:
            logger.info("tier_user_registered", extra={"email": email, "source": source})
            emit_event(
                self.dispatcher,
                USER_REGISTERED,
                email,
                {"tier": Tier.TIER1.value, "source": source, "founder_led_mql": founder_led_mql},
            )
        record = self.store.get_tier_record(email)
        if record is None:
            raise StorageUnavailable("tier record missing after insert")
        return record

    def _applied(
        self,
        email: str,
        previous: str | None,
        requested: Tier,
        source: str | None,
        details: dict[str, Any] | None,
    ) -> TierChangeResult:
        tier_changes_total.labels(outcome=TierChangeOutcome.APPLIED.value).inc()
        logger.info(
            "tier_changed",
            extra={"email": email, "previous_tier": previous, "new_tier": requested.value, "source": source},
        )
        payload = dict(details or {})
        payload.update({"previous_tier": previous, "new_tier": requested.value, "source": source})
        emit_event(self.dispatcher, TIER_CHANGED, email, payload)
        return TierChangeResult(
            applied=True,
            outcome=TierChangeOutcome.APPLIED,
            previous_tier=previous,
            new_tier=requested.value,
        )

    def _not_applied(self, email: str, record: TierRecord, requested: Tier) -> TierChangeResult:
        current = Tier.parse(record.tier)
        if current is requested:
            outcome = TierChangeOutcome.NOOP
        else:
            outcome = TierChangeOutcome.REJECTED
            logger.warning(
                "tier_downgrade_ignored",
                extra={"email": email, "tier": record.tier, "new_tier": requested.value},
            )
        tier_changes_total.labels(outcome=outcome.value).inc()
        return TierChangeResult(
            applied=False,
            outcome=outcome,
            previous_tier=record.tier,
            new_tier=record.tier,
        )


def parse_survey_payload(body: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    """
    Typeform webhook -> (email, details).
    Email comes from hidden fields (user_email, then email); sector from text/choice
    answers, NPS from number/opinion_scale answers.
    """
    form = (body or {}).get("form_response") or {}
    hidden = form.get("hidden") or {}
    email = hidden.get("user_email") or hidden.get("email")
    if not email:
        raise ValidationError("Missing user email")

    sector = ""
    nps = 0
    for answer in form.get("answers") or []:
        kind = answer.get("type")
        if kind in ("text", "choice"):
            sector = answer.get("text") or (answer.get("choice") or {}).get("label") or ""
        elif kind in ("number", "opinion_scale"):
            nps = answer.get("number") or 0
    return email, {"sector_interest": sector, "nps_score": nps}


def extract_booking_email(body: dict[str, Any]) -> str:
    """VIP booking webhook (Calendly-style): email, payload.email or payload.invitee.email."""
    body = body or {}
    payload = body.get("payload") or {}
    email = body.get("email") or payload.get("email") or (payload.get("invitee") or {}).get("email")
    if not email:
        raise ValidationError("Invalid email")
    return email
