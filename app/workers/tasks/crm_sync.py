"""
Relay of domain events to HubSpot.
Enqueued by app.workers.dispatcher.CeleryEventDispatcher; the worker maps events to contact properties.
"""
import logging
from typing import Any

from app.core.celery_app import celery_app
from app.paywall.events import TIER_CHANGED, USER_INVITED
from app.services.crm.hubspot import HubSpotClient

logger = logging.getLogger(__name__)

# Lifecycle stage per tier written on contact creation.
LIFECYCLE_STAGES = {
    "tier1": "marketingqualifiedlead",
    "tier2": "marketingqualifiedlead",
    "vip": "salesqualifiedlead",
}


def crm_properties_for(event: dict[str, Any]) -> dict[str, str] | None:
    """HubSpot contact properties for an event, or None if the CRM does not track it."""
    details = event.get("details") or {}
    if event.get("type") == USER_INVITED:
        tier = details.get("tier") or "tier1"
        props = {
            "tier_status": tier,
            "lifecyclestage": LIFECYCLE_STAGES.get(tier, "marketingqualifiedlead"),
            "beta_icp_list": "true",
            "founder_led_mql": "true" if details.get("founder_led_mql") else "false",
            "lead_source": details.get("source") or "inbound",
        }
        return props
    if event.get("type") == TIER_CHANGED:
        tier = details.get("new_tier")
        if not tier:
            return None
        props = {"tier_status": tier}
        if tier == "vip":
            props["lifecyclestage"] = LIFECYCLE_STAGES["vip"]
        if "sector_interest" in details:
            props["sector_interest"] = str(details.get("sector_interest") or "")
        if "nps_score" in details:
            props["nps_score"] = str(details.get("nps_score") or 0)
        return props
    return None


@celery_app.task(name="app.workers.tasks.crm_sync.relay_event")
def relay_event(event: dict) -> dict:
    """Push one domain event to HubSpot. Failures are logged, never re-raised."""
    properties = crm_properties_for(event)
    if properties is None:
        return {"relayed": False, "skipped": "untracked_event"}

    hubspot = HubSpotClient()
    if not hubspot.enabled:
        return {"relayed": False, "skipped": "hubspot_disabled"}
    try:
        result = hubspot.upsert_contact(event["email"], properties)
        return {"relayed": True, "result": result}
    except Exception:
        logger.exception(
            "crm_relay_failed",
            extra={"event_type": event.get("type"), "email": event.get("email")},
        )
        return {"relayed": False, "error": "exception"}
    finally:
        hubspot.close()

