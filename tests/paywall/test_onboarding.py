"""Tests for OnboardingService: inbound invites and admin-generated outbound links."""
from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest

from app.paywall.errors import NotAllowed, ValidationError
from app.paywall.events import MAGIC_LINK_ISSUED, USER_INVITED, RecordingEventDispatcher
from app.paywall.magic_link import MagicLinkService
from app.paywall.onboarding import OnboardingService
from app.paywall.policy import TierPolicy
from app.paywall.tiers import TierService
from app.storage.memory import InMemoryAccessStore


@pytest.fixture
def store():
    return InMemoryAccessStore()


@pytest.fixture
def events():
    return RecordingEventDispatcher()


@pytest.fixture
def onboarding(store, events):
    tiers = TierService(store, TierPolicy(), events)
    links = MagicLinkService(
        store,
        ttl=timedelta(hours=24),
        base_url="https://site.test/auth/verify",
        dispatcher=events,
    )
    return OnboardingService(
        tiers,
        links,
        admin_emails={"Boss@Site.test"},
        site_url="https://site.test/",
        dispatcher=events,
    )


class TestInvite:
    def test_new_user_registered_at_tier1(self, onboarding, store, events):
        result = onboarding.invite(" Lead@Example.com ")
        assert result.tier == "tier1"
        record = store.get_tier_record("lead@example.com")
        assert record.tier == "tier1"
        assert record.source == "inbound"
        assert record.founder_led_mql is True
        assert store.get_token("lead@example.com").token == result.link.token
        (invited,) = events.of_type(USER_INVITED)
        assert invited.details["source"] == "inbound"
        assert len(events.of_type(MAGIC_LINK_ISSUED)) == 1

    def test_reinvite_keeps_higher_tier(self, onboarding, store):
        store.insert_tier_record("v@example.com", "vip")
        result = onboarding.invite("v@example.com")
        assert result.tier == "vip"
        assert store.get_tier_record("v@example.com").tier == "vip"

    def test_url_redirects_to_site(self, onboarding):
        result = onboarding.invite("lead@example.com")
        query = parse_qs(urlparse(result.url).query)
        assert query["redirect_to"] == ["https://site.test"]


class TestAdminGenerateLink:
    def test_forbidden_for_unknown_admin(self, onboarding, store):
        with pytest.raises(NotAllowed):
            onboarding.admin_generate_link("intruder@site.test", "lead@example.com")
        assert store.get_tier_record("lead@example.com") is None

    def test_forbidden_without_header(self, onboarding):
        with pytest.raises(NotAllowed):
            onboarding.admin_generate_link(None, "lead@example.com")

    def test_promo_slug_redirect(self, onboarding, store):
        result = onboarding.admin_generate_link(" boss@site.test", "Lead@Example.com", "q3-fintech")
        assert result.admin_email == "boss@site.test"
        assert result.redirect_url == "https://site.test/q3-fintech?promo_report=q3-fintech"
        assert result.promo_report_slug == "q3-fintech"
        record = store.get_tier_record("lead@example.com")
        assert record.source == "outbound"
        query = parse_qs(urlparse(result.url).query)
        assert query["token"] == [result.link.token]

    def test_default_redirect_is_library(self, onboarding):
        result = onboarding.admin_generate_link("boss@site.test", "lead@example.com")
        assert result.redirect_url == "https://site.test/library"
        assert result.promo_report_slug is None

    def test_slug_with_slash_rejected(self, onboarding):
        with pytest.raises(ValidationError):
            onboarding.admin_generate_link("boss@site.test", "lead@example.com", "../admin")

    def test_existing_user_not_downgraded(self, onboarding, store):
        store.insert_tier_record("lead@example.com", "tier2")
        onboarding.admin_generate_link("boss@site.test", "lead@example.com")
        assert store.get_tier_record("lead@example.com").tier == "tier2"

    def test_admin_link_not_emailed(self, onboarding, events):
        onboarding.admin_generate_link("boss@site.test", "lead@example.com")
        (event,) = events.of_type(MAGIC_LINK_ISSUED)
        assert event.details["deliver"] is False


class TestLinkDelivery:
    def test_invite_link_emailed(self, onboarding, events):
        onboarding.invite("lead@example.com")
        (event,) = events.of_type(MAGIC_LINK_ISSUED)
        assert event.details["deliver"] is True
