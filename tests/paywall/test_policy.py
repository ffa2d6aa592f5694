"""
Unit-тесты TierPolicy: квоты и порядок тарифов, без I/O.
"""
import unittest

from pydantic import ValidationError as PydanticValidationError

from app.paywall.models import Tier
from app.paywall.policy import UNLIMITED, TierChange, TierPolicy, TierQuotas


class TestQuotas(unittest.TestCase):
    def setUp(self):
        self.policy = TierPolicy(TierQuotas(tier1=1, tier2=3))

    def test_finite_tiers(self):
        self.assertEqual(self.policy.quota_for(Tier.TIER1), 1)
        self.assertEqual(self.policy.quota_for(Tier.TIER2), 3)

    def test_vip_is_unlimited_not_a_number(self):
        quota = self.policy.quota_for(Tier.VIP)
        self.assertIs(quota, UNLIMITED)
        self.assertNotIsInstance(quota, int)

    def test_has_quota_left_boundary(self):
        self.assertTrue(self.policy.has_quota_left(Tier.TIER1, 0))
        self.assertFalse(self.policy.has_quota_left(Tier.TIER1, 1))
        self.assertTrue(self.policy.has_quota_left(Tier.TIER2, 2))
        self.assertFalse(self.policy.has_quota_left(Tier.TIER2, 3))
        self.assertTrue(self.policy.has_quota_left(Tier.VIP, 10_000))

    def test_defaults(self):
        policy = TierPolicy()
        self.assertEqual(policy.quota_for(Tier.TIER1), 1)
        self.assertEqual(policy.quota_for(Tier.TIER2), 3)

    def test_quotas_must_be_positive(self):
        with self.assertRaises(PydanticValidationError):
            TierQuotas(tier1=0, tier2=3)


class TestTierOrder(unittest.TestCase):
    def setUp(self):
        self.policy = TierPolicy()

    def test_upgrade_noop_downgrade(self):
        self.assertEqual(self.policy.classify_change(Tier.TIER1, Tier.TIER2), TierChange.UPGRADE)
        self.assertEqual(self.policy.classify_change(Tier.TIER2, Tier.TIER2), TierChange.NOOP)
        self.assertEqual(self.policy.classify_change(Tier.VIP, Tier.TIER2), TierChange.DOWNGRADE)

    def test_unknown_current_ranks_lowest(self):
        self.assertTrue(self.policy.can_upgrade(None, Tier.TIER1))

    def test_tiers_below(self):
        self.assertEqual(self.policy.tiers_below(Tier.TIER1), [])
        self.assertEqual(self.policy.tiers_below(Tier.VIP), [Tier.TIER1, Tier.TIER2])


class TestTierParse(unittest.TestCase):
    def test_parse_normalizes_case(self):
        self.assertIs(Tier.parse(" VIP "), Tier.VIP)

    def test_parse_unknown(self):
        self.assertIsNone(Tier.parse("gold"))
        self.assertIsNone(Tier.parse(None))
        self.assertIsNone(Tier.parse(2))
