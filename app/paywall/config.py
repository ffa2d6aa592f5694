"""
Paywall config — типизированная обёртка над app.core.config для квот и magic links.
"""
from __future__ import annotations

from datetime import timedelta

from app.core.config import settings
from app.paywall.policy import TierQuotas


def get_default_quotas() -> TierQuotas:
    """Quotas from env (TIER1_LIMIT / TIER2_LIMIT); the access_settings row overrides them."""
    return TierQuotas(tier1=settings.tier1_limit, tier2=settings.tier2_limit)


def get_magic_link_ttl() -> timedelta:
    return timedelta(hours=settings.magic_link_ttl_hours)


def get_magic_link_base_url() -> str:
    return settings.magic_link_base_url


def get_site_url() -> str:
    return settings.site_url.rstrip("/")


def get_admin_emails() -> set[str]:
    return settings.admin_emails_set
