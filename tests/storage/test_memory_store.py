from datetime import datetime, timedelta, timezone

import pytest

from app.paywall.errors import DuplicateGrant
from app.storage.base import TokenRecord
from app.storage.memory import InMemoryAccessStore


@pytest.fixture
def store():
    return InMemoryAccessStore()


def _token(email="a@example.com", token="tok"):
    now = datetime.now(timezone.utc)
    return TokenRecord(email=email, token=token, issued_at=now, expires_at=now + timedelta(hours=1))


def test_insert_tier_record_once(store):
    assert store.insert_tier_record("a@example.com", "tier1", source="inbound") is True
    assert store.insert_tier_record("a@example.com", "vip") is False
    assert store.get_tier_record("a@example.com").tier == "tier1"


def test_returned_records_are_copies(store):
    store.insert_tier_record("a@example.com", "tier1")
    record = store.get_tier_record("a@example.com")
    record.tier = "vip"
    assert store.get_tier_record("a@example.com").tier == "tier1"


def test_upgrade_tier_conditional(store):
    store.insert_tier_record("a@example.com", "tier2")
    assert store.upgrade_tier("a@example.com", "vip", ["tier1"]) == 0
    assert store.upgrade_tier("a@example.com", "vip", ["tier1", "tier2"]) == 1
    assert store.upgrade_tier("missing@example.com", "vip", ["tier1"]) == 0


def test_grants(store):
    store.insert_grant("a@example.com", "p1")
    store.insert_grant("a@example.com", "p2")
    store.insert_grant("b@example.com", "p1")
    with pytest.raises(DuplicateGrant):
        store.insert_grant("a@example.com", "p1")
    assert store.count_grants("a@example.com") == 2
    assert {g.content_id for g in store.grants_for("a@example.com")} == {"p1", "p2"}


def test_mark_token_used_once(store):
    store.upsert_token(_token())
    assert store.mark_token_used("a@example.com", "other") == 0
    assert store.mark_token_used("a@example.com", "tok") == 1
    assert store.mark_token_used("a@example.com", "tok") == 0


def test_upsert_token_replaces(store):
    store.upsert_token(_token(token="one"))
    store.mark_token_used("a@example.com", "one")
    store.upsert_token(_token(token="two"))
    record = store.get_token("a@example.com")
    assert record.token == "two"
    assert record.used is False
