"""Tests for TierService: monotonic upgrades, no-op/rejected outcomes, webhook payload parsing."""
import pytest

from app.paywall.errors import ValidationError
from app.paywall.events import TIER_CHANGED, USER_REGISTERED, RecordingEventDispatcher
from app.paywall.models import Tier, TierChangeOutcome
from app.paywall.policy import TierPolicy
from app.paywall.tiers import TierService, extract_booking_email, parse_survey_payload
from app.storage.memory import InMemoryAccessStore


@pytest.fixture
def store():
    return InMemoryAccessStore()


@pytest.fixture
def events():
    return RecordingEventDispatcher()


@pytest.fixture
def service(store, events):
    return TierService(store, TierPolicy(), events)


class TestRequestTierChange:
    def test_new_email_created_at_requested_tier(self, service, store):
        result = service.request_tier_change("New@Example.com", "tier2", source="survey")
        assert result.applied is True
        assert result.outcome == TierChangeOutcome.APPLIED
        assert result.previous_tier is None
        assert result.new_tier == "tier2"
        record = store.get_tier_record("new@example.com")
        assert record.tier == "tier2"
        assert record.source == "survey"

    def test_upgrade_applied_with_event(self, service, store, events):
        store.insert_tier_record("a@example.com", "tier1")
        result = service.request_tier_change(
            "a@example.com",
            Tier.TIER2,
            source="survey",
            details={"sector_interest": "fintech", "nps_score": 9},
        )
        assert result.applied is True
        assert result.previous_tier == "tier1"
        assert store.get_tier_record("a@example.com").tier == "tier2"
        (event,) = events.of_type(TIER_CHANGED)
        assert event.details == {
            "sector_interest": "fintech",
            "nps_score": 9,
            "previous_tier": "tier1",
            "new_tier": "tier2",
            "source": "survey",
        }

    def test_same_tier_is_noop_without_write(self, service, store, events):
        store.insert_tier_record("a@example.com", "tier2")
        writes = store.tier_writes
        result = service.request_tier_change("a@example.com", "tier2")
        assert result.applied is False
        assert result.outcome == TierChangeOutcome.NOOP
        assert result.new_tier == "tier2"
        assert store.tier_writes == writes
        assert events.events == []

    def test_downgrade_rejected(self, service, store, events):
        store.insert_tier_record("v@example.com", "vip")
        result = service.request_tier_change("v@example.com", "tier2")
        assert result.applied is False
        assert result.outcome == TierChangeOutcome.REJECTED
        assert result.previous_tier == "vip"
        assert result.new_tier == "vip"
        assert store.get_tier_record("v@example.com").tier == "vip"
        assert events.of_type(TIER_CHANGED) == []

    def test_vip_to_tier1_rejected(self, service, store):
        store.insert_tier_record("v@example.com", "vip")
        assert service.request_tier_change("v@example.com", "tier1").outcome == TierChangeOutcome.REJECTED

    def test_upgrade_keeps_unlock_history(self, service, store):
        store.insert_tier_record("h@example.com", "tier1")
        store.insert_grant("h@example.com", "p1")
        service.request_tier_change("h@example.com", "vip")
        assert store.get_grant("h@example.com", "p1") is not None

    def test_unknown_stored_status_can_be_upgraded(self, service, store):
        store.insert_tier_record("odd@example.com", "legacy")
        result = service.request_tier_change("odd@example.com", "tier1")
        assert result.applied is True
        assert result.previous_tier == "legacy"
        assert store.get_tier_record("odd@example.com").tier == "tier1"

    def test_uppercase_stored_tier_upgraded(self, service, store, events):
        store.insert_tier_record("caps@example.com", "TIER1")
        result = service.request_tier_change("caps@example.com", "tier2")
        assert result.applied is True
        assert result.outcome == TierChangeOutcome.APPLIED
        assert result.previous_tier == "TIER1"
        assert store.get_tier_record("caps@example.com").tier == "tier2"
        assert len(events.of_type(TIER_CHANGED)) == 1

    def test_unknown_requested_tier(self, service):
        with pytest.raises(ValidationError):
            service.request_tier_change("a@example.com", "platinum")

    def test_invalid_email(self, service):
        with pytest.raises(ValidationError):
            service.request_tier_change("not-an-email", "tier2")

    def test_lost_race_reported_not_applied(self, service, store):
        store.insert_tier_record("race@example.com", "tier1")
        real_upgrade = store.upgrade_tier

        def concurrent_vip(email, new_tier, from_tiers):
            # Another request upgrades to vip first.
            real_upgrade(email, "vip", ["tier1"])
            return real_upgrade(email, new_tier, from_tiers)

        store.upgrade_tier = concurrent_vip
        result = service.request_tier_change("race@example.com", "tier2")
        assert result.applied is False
        assert result.outcome == TierChangeOutcome.REJECTED
        assert result.new_tier == "vip"


class TestEnsureRegistered:
    def test_new_user_at_tier1(self, service, store, events):
        record = service.ensure_registered("n@example.com", source="inbound", founder_led_mql=True)
        assert record.tier == "tier1"
        assert record.founder_led_mql is True
        assert len(events.of_type(USER_REGISTERED)) == 1

    def test_existing_user_not_downgraded(self, service, store, events):
        store.insert_tier_record("v@example.com", "vip")
        record = service.ensure_registered("V@example.com")
        assert record.tier == "vip"
        assert events.of_type(USER_REGISTERED) == []


class TestSurveyPayload:
    def test_hidden_user_email_and_answers(self):
        body = {
            "form_response": {
                "hidden": {"user_email": "a@example.com"},
                "answers": [
                    {"type": "choice", "choice": {"label": "Fintech"}},
                    {"type": "opinion_scale", "number": 8},
                ],
            }
        }
        email, details = parse_survey_payload(body)
        assert email == "a@example.com"
        assert details == {"sector_interest": "Fintech", "nps_score": 8}

    def test_fallback_hidden_email_and_defaults(self):
        email, details = parse_survey_payload({"form_response": {"hidden": {"email": "b@example.com"}}})
        assert email == "b@example.com"
        assert details == {"sector_interest": "", "nps_score": 0}

    def test_missing_email(self):
        with pytest.raises(ValidationError):
            parse_survey_payload({"form_response": {"hidden": {}}})


class TestBookingEmail:
    @pytest.mark.parametrize(
        "body",
        [
            {"email": "a@example.com"},
            {"payload": {"email": "a@example.com"}},
            {"payload": {"invitee": {"email": "a@example.com"}}},
        ],
    )
    def test_shapes(self, body):
        assert extract_booking_email(body) == "a@example.com"

    def test_missing(self):
        with pytest.raises(ValidationError):
            extract_booking_email({"payload": {}})
