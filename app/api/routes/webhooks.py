"""
Inbound webhooks that raise tiers.
Survey completion (Typeform) -> tier2, call booking (Calendly-style) -> vip.
"""
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from app.api.deps import get_tier_service, require_webhook_secret
from app.paywall.models import Tier
from app.paywall.tiers import TierService, extract_booking_email, parse_survey_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"], dependencies=[Depends(require_webhook_secret)])


@router.post("/survey")
def survey_completed(
    body: dict[str, Any] = Body(...),
    tiers: TierService = Depends(get_tier_service),
) -> dict:
    email, details = parse_survey_payload(body)
    result = tiers.request_tier_change(email, Tier.TIER2, source="survey", details=details)
    logger.info(
        "survey_webhook_processed",
        extra={"email": email, "outcome": result.outcome.value, "source": "survey"},
    )
    return {"success": True, "tier": result.new_tier, "outcome": result.outcome.value}


@router.get("/vip")
def vip_booking_redirect(
    email: str | None = Query(None),
    tiers: TierService = Depends(get_tier_service),
) -> dict:
    """Booking confirmation page variant: email arrives as a query parameter."""
    return _upgrade_to_vip(extract_booking_email({"email": email}), tiers)


@router.post("/vip")
def vip_booking(
    body: dict[str, Any] = Body(...),
    tiers: TierService = Depends(get_tier_service),
) -> dict:
    return _upgrade_to_vip(extract_booking_email(body), tiers)


def _upgrade_to_vip(email: str, tiers: TierService) -> dict:
    result = tiers.request_tier_change(email, Tier.VIP, source="booking")
    logger.info(
        "vip_webhook_processed",
        extra={"email": email, "outcome": result.outcome.value, "source": "booking"},
    )
    return {"success": True, "tier": result.new_tier, "outcome": result.outcome.value}
