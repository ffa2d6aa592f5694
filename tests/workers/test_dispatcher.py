from unittest.mock import patch

from app.paywall.events import MAGIC_LINK_ISSUED, DomainEvent
from app.workers.dispatcher import CeleryEventDispatcher


def _issued(deliver=True):
    return DomainEvent(
        type=MAGIC_LINK_ISSUED,
        email="a@example.com",
        details={
            "expires_at": "2026-03-02T12:00:00+00:00",
            "link_url": "https://site.test/auth/verify?email=a%40example.com&token=t",
            "deliver": deliver,
        },
    )


class TestCeleryEventDispatcher:
    @patch("app.workers.dispatcher.relay_event")
    @patch("app.workers.dispatcher.deliver_magic_link")
    def test_issued_link_goes_to_mailer(self, deliver, relay):
        CeleryEventDispatcher().dispatch(_issued())
        payload = deliver.delay.call_args[0][0]
        assert payload["email"] == "a@example.com"
        assert payload["details"]["link_url"].endswith("token=t")
        relay.delay.assert_not_called()

    @patch("app.workers.dispatcher.relay_event")
    @patch("app.workers.dispatcher.deliver_magic_link")
    def test_admin_handed_link_not_emailed(self, deliver, relay):
        CeleryEventDispatcher().dispatch(_issued(deliver=False))
        deliver.delay.assert_not_called()
        relay.delay.assert_not_called()

    @patch("app.workers.dispatcher.relay_event")
    @patch("app.workers.dispatcher.deliver_magic_link")
    def test_crm_events_relayed(self, deliver, relay):
        CeleryEventDispatcher().dispatch(
            DomainEvent(type="tier_changed", email="a@example.com", details={"new_tier": "tier2"})
        )
        payload = relay.delay.call_args[0][0]
        assert payload["details"]["new_tier"] == "tier2"
        assert isinstance(payload["occurred_at"], str)
        deliver.delay.assert_not_called()

    @patch("app.workers.dispatcher.relay_event")
    @patch("app.workers.dispatcher.deliver_magic_link")
    def test_untracked_dropped(self, deliver, relay):
        CeleryEventDispatcher().dispatch(DomainEvent(type="unlock_granted", email="a@example.com"))
        relay.delay.assert_not_called()
        deliver.delay.assert_not_called()


class TestDispatcherSelection:
    def test_celery_when_mail_configured(self):
        from app.api.deps import get_dispatcher
        from app.core.config import settings

        with patch.object(settings, "mail_api_key", "re_test"), patch.object(
            settings, "hubspot_private_app_token", ""
        ):
            assert isinstance(get_dispatcher(), CeleryEventDispatcher)

    def test_logging_when_nothing_configured(self):
        from app.api.deps import get_dispatcher
        from app.core.config import settings
        from app.paywall.events import LoggingEventDispatcher

        with patch.object(settings, "mail_api_key", ""), patch.object(
            settings, "hubspot_private_app_token", ""
        ):
            assert isinstance(get_dispatcher(), LoggingEventDispatcher)
