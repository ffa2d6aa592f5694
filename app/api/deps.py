"""
FastAPI dependencies: one SQL session per request shared by store and quota lookup.
"""
import hmac

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.paywall.access import AccessGate
from app.paywall.config import (
    get_admin_emails,
    get_magic_link_base_url,
    get_magic_link_ttl,
    get_site_url,
)
from app.paywall.events import EventDispatcher, LoggingEventDispatcher
from app.paywall.magic_link import MagicLinkService
from app.paywall.onboarding import OnboardingService
from app.paywall.policy import TierPolicy
from app.paywall.tiers import TierService
from app.services.access_settings.settings_service import AccessSettingsService
from app.services.auth.session_tokens import SessionTokenService
from app.storage.base import AccessStore
from app.storage.sql import SqlAccessStore
from app.workers.dispatcher import CeleryEventDispatcher


def get_store(db: Session = Depends(get_db)) -> AccessStore:
    return SqlAccessStore(db)


def get_policy(db: Session = Depends(get_db)) -> TierPolicy:
    return TierPolicy(AccessSettingsService(db).get_quotas())


def get_dispatcher() -> EventDispatcher:
    """Celery (mail delivery, CRM relay) when either is configured, plain log lines otherwise."""
    if settings.mail_api_key or settings.hubspot_private_app_token:
        return CeleryEventDispatcher()
    return LoggingEventDispatcher()


def get_access_gate(
    store: AccessStore = Depends(get_store),
    policy: TierPolicy = Depends(get_policy),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> AccessGate:
    return AccessGate(store, policy, dispatcher)


def get_tier_service(
    store: AccessStore = Depends(get_store),
    policy: TierPolicy = Depends(get_policy),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> TierService:
    return TierService(store, policy, dispatcher)


def get_magic_link_service(
    store: AccessStore = Depends(get_store),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> MagicLinkService:
    return MagicLinkService(
        store,
        ttl=get_magic_link_ttl(),
        base_url=get_magic_link_base_url(),
        dispatcher=dispatcher,
    )


def get_onboarding_service(
    tiers: TierService = Depends(get_tier_service),
    magic_links: MagicLinkService = Depends(get_magic_link_service),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> OnboardingService:
    return OnboardingService(
        tiers,
        magic_links,
        admin_emails=get_admin_emails(),
        site_url=get_site_url(),
        dispatcher=dispatcher,
    )


def get_session_tokens() -> SessionTokenService:
    return SessionTokenService()


def require_admin_key(x_admin_key: str | None = Header(None)) -> None:
    """Server-to-server admin calls. Disabled entirely while ADMIN_API_KEY is unset."""
    expected = settings.admin_api_key
    if not expected or not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin key",
        )


def require_webhook_secret(x_webhook_secret: str | None = Header(None)) -> None:
    expected = settings.webhook_secret
    if not expected:
        return
    if not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook secret",
        )
