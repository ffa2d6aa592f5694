from unittest.mock import patch

from app.paywall.policy import TierQuotas
from app.services.access_settings.settings_service import AccessSettingsService


class TestAccessSettingsService:
    def test_quotas_fall_back_to_env_without_writing(self, db_session):
        service = AccessSettingsService(db_session)
        with patch(
            "app.services.access_settings.settings_service.get_default_quotas",
            return_value=TierQuotas(tier1=2, tier2=5),
        ):
            quotas = service.get_quotas()
        assert quotas == TierQuotas(tier1=2, tier2=5)
        assert service.get() is None

    def test_as_dict_seeds_row(self, db_session):
        data = AccessSettingsService(db_session).as_dict()
        assert data["tier1_limit"] == 1
        assert data["tier2_limit"] == 3
        assert data["vip_limit"] is None

    def test_update_clamps_and_ignores_garbage(self, db_session):
        service = AccessSettingsService(db_session)
        data = service.update({"tier1_limit": 0, "tier2_limit": "lots", "unknown": 9})
        assert data["tier1_limit"] == 1
        assert data["tier2_limit"] == 3

        data = service.update({"tier2_limit": 5000, "tier1_limit": True})
        assert data["tier2_limit"] == 1000
        assert data["tier1_limit"] == 1

    def test_row_overrides_env(self, db_session):
        service = AccessSettingsService(db_session)
        service.update({"tier1_limit": 2, "tier2_limit": 6})
        assert service.get_quotas() == TierQuotas(tier1=2, tier2=6)
