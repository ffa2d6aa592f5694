"""
Invite and admin link flows: provision at tier1 (never downgrading), then issue a magic link.
"""
from __future__ import annotations

import logging
from urllib.parse import quote

from pydantic import BaseModel

from app.paywall.errors import NotAllowed, ValidationError
from app.paywall.events import USER_INVITED, EventDispatcher, emit_event
from app.paywall.identity import normalize_email
from app.paywall.magic_link import MagicLinkService
from app.paywall.models import IssuedMagicLink
from app.paywall.tiers import TierService

logger = logging.getLogger(__name__)

GENERATE_LINK_ACTION = "generate_link"


class InviteResult(BaseModel):
    link: IssuedMagicLink
    url: str
    tier: str

    model_config = {"frozen": True}


class AdminLinkResult(BaseModel):
    link: IssuedMagicLink
    url: str
    redirect_url: str
    admin_email: str
    promo_report_slug: str | None = None

    model_config = {"frozen": True}


class OnboardingService:
    def __init__(
        self,
        tiers: TierService,
        magic_links: MagicLinkService,
        *,
        admin_emails: set[str],
        site_url: str,
        dispatcher: EventDispatcher | None = None,
    ) -> None:
        self.tiers = tiers
        self.magic_links = magic_links
        self.admin_emails = {e.strip().lower() for e in admin_emails}
        self.site_url = site_url.rstrip("/")
        self.dispatcher = dispatcher

    def invite(self, email: str, *, source: str | None = "inbound") -> InviteResult:
        """Inbound signup: register as an MQL at tier1 if new, then send a fresh link."""
        record = self.tiers.ensure_registered(email, source=source or "inbound", founder_led_mql=True)
        redirect_url = self.site_url
        link = self.magic_links.issue(record.email, redirect_to=redirect_url)
        emit_event(
            self.dispatcher,
            USER_INVITED,
            record.email,
            {"tier": record.tier, "source": source or "inbound", "founder_led_mql": True},
        )
        return InviteResult(
            link=link,
            url=self.magic_links.build_link(link, redirect_to=redirect_url),
            tier=record.tier,
        )

    def admin_generate_link(
        self,
        admin_email: str | None,
        email: str,
        promo_report_slug: str | None = None,
    ) -> AdminLinkResult:
        """Outbound: an allow-listed admin provisions a user and gets the link back directly."""
        if not admin_email or admin_email.strip().lower() not in self.admin_emails:
            logger.warning("admin_link_forbidden", extra={"admin_email": admin_email})
            raise NotAllowed("Forbidden")
        admin_email = admin_email.strip().lower()
        slug = (promo_report_slug or "").strip() or None
        if slug and "/" in slug:
            raise ValidationError("Invalid promo_report_slug")

        record = self.tiers.ensure_registered(email, source="outbound", founder_led_mql=True)
        if slug:
            quoted = quote(slug)
            redirect_url = f"{self.site_url}/{quoted}?promo_report={quoted}"
        else:
            redirect_url = f"{self.site_url}/library"

        link = self.magic_links.issue(record.email, redirect_to=redirect_url, deliver=False)
        logger.info(
            "admin_link_generated",
            extra={"admin_email": admin_email, "email": record.email, "source": "outbound"},
        )
        emit_event(
            self.dispatcher,
            USER_INVITED,
            record.email,
            {"tier": record.tier, "source": "outbound", "founder_led_mql": True, "promo_report_slug": slug},
        )
        return AdminLinkResult(
            link=link,
            url=self.magic_links.build_link(link, redirect_to=redirect_url),
            redirect_url=redirect_url,
            admin_email=admin_email,
            promo_report_slug=slug,
        )
