"""
Domain events: fire-and-forget уведомления после изменения состояния.
Сбой диспетчера логируется и отбрасывается — доступ из-за него не ломается.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from app.utils.metrics import event_dispatch_failures_total

logger = logging.getLogger(__name__)

USER_REGISTERED = "user_registered"
USER_INVITED = "user_invited"
TIER_CHANGED = "tier_changed"
UNLOCK_GRANTED = "unlock_granted"
MAGIC_LINK_ISSUED = "magic_link_issued"
MAGIC_LINK_VERIFIED = "magic_link_verified"


class DomainEvent(BaseModel):
    type: str
    email: str
    details: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}


class EventDispatcher(ABC):
    @abstractmethod
    def dispatch(self, event: DomainEvent) -> None:
        raise NotImplementedError


class LoggingEventDispatcher(EventDispatcher):
    """Default dispatcher: writes the event type to the log. Details are not logged (link_url holds a token)."""

    def dispatch(self, event: DomainEvent) -> None:
        logger.info(
            "domain_event",
            extra={"event_type": event.type, "email": event.email},
        )
        if event.type == MAGIC_LINK_ISSUED and event.details.get("deliver", True):
            logger.warning("magic_link_not_delivered", extra={"email": event.email})


class RecordingEventDispatcher(EventDispatcher):
    """Keeps events in memory (tests, local scripts)."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    def dispatch(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[DomainEvent]:
        return [e for e in self.events if e.type == event_type]


def emit_event(
    dispatcher: EventDispatcher | None,
    event_type: str,
    email: str,
    details: dict[str, Any] | None = None,
) -> None:
    if dispatcher is None:
        return
    event = DomainEvent(type=event_type, email=email, details=details or {})
    try:
        dispatcher.dispatch(event)
    except Exception:
        event_dispatch_failures_total.labels(event_type=event_type).inc()
        logger.exception(
            "domain_event_dispatch_failed",
            extra={"event_type": event_type, "email": email},
        )
