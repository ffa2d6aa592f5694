"""
Celery-backed EventDispatcher: the API process only enqueues, workers talk to the mailer and the CRM.
"""
from app.paywall.events import MAGIC_LINK_ISSUED, DomainEvent, EventDispatcher
from app.workers.tasks.crm_sync import crm_properties_for, relay_event
from app.workers.tasks.magic_link_delivery import deliver_magic_link


class CeleryEventDispatcher(EventDispatcher):
    """Broker errors surface to emit_event, which logs them."""

    def dispatch(self, event: DomainEvent) -> None:
        payload = event.model_dump(mode="json")
        if event.type == MAGIC_LINK_ISSUED:
            # Admin-generated links are handed over by the admin, not emailed.
            if event.details.get("deliver", True):
                deliver_magic_link.delay(payload)
            return
        if crm_properties_for({"type": event.type, "details": event.details}) is not None:
            relay_event.delay(payload)
