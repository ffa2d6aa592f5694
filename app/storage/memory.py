"""
In-memory AccessStore. Every operation runs under one lock, which gives the
same atomic predicates the SQL store gets from constraints and conditional updates.
"""
from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timezone

from app.paywall.errors import DuplicateGrant
from app.storage.base import AccessStore, TierRecord, TokenRecord, UnlockGrant


class InMemoryAccessStore(AccessStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tiers: dict[str, TierRecord] = {}
        self._grants: dict[tuple[str, str], UnlockGrant] = {}
        self._tokens: dict[str, TokenRecord] = {}
        # Write counters, handy for asserting "no write happened".
        self.grant_inserts = 0
        self.tier_writes = 0

    def get_tier_record(self, email: str) -> TierRecord | None:
        with self._lock:
            record = self._tiers.get(email)
            return replace(record) if record else None

    def insert_tier_record(
        self,
        email: str,
        tier: str,
        *,
        source: str | None = None,
        founder_led_mql: bool = False,
    ) -> bool:
        with self._lock:
            if email in self._tiers:
                return False
            self._tiers[email] = TierRecord(
                email=email,
                tier=tier,
                source=source,
                founder_led_mql=founder_led_mql,
            )
            self.tier_writes += 1
            return True

    def upgrade_tier(self, email: str, new_tier: str, from_tiers: Iterable[str]) -> int:
        allowed = set(from_tiers)
        with self._lock:
            record = self._tiers.get(email)
            if record is None or record.tier not in allowed:
                return 0
            record.tier = new_tier
            self.tier_writes += 1
            return 1

    def increment_unlocks_count(self, email: str) -> None:
        with self._lock:
            record = self._tiers.get(email)
            if record is not None:
                record.unlocks_count += 1

    def get_grant(self, email: str, content_id: str) -> UnlockGrant | None:
        with self._lock:
            return self._grants.get((email, content_id))

    def count_grants(self, email: str) -> int:
        with self._lock:
            return sum(1 for owner, _ in self._grants if owner == email)

    def insert_grant(self, email: str, content_id: str) -> UnlockGrant:
        with self._lock:
            key = (email, content_id)
            if key in self._grants:
                raise DuplicateGrant(f"{email}:{content_id}")
            grant = UnlockGrant(email=email, content_id=content_id, created_at=datetime.now(timezone.utc))
            self._grants[key] = grant
            self.grant_inserts += 1
            return grant

    def grants_for(self, email: str) -> list[UnlockGrant]:
        with self._lock:
            return [g for (owner, _), g in self._grants.items() if owner == email]

    def get_token(self, email: str) -> TokenRecord | None:
        with self._lock:
            record = self._tokens.get(email)
            return replace(record) if record else None

    def upsert_token(self, record: TokenRecord) -> None:
        with self._lock:
            self._tokens[record.email] = replace(record)

    def mark_token_used(self, email: str, token: str) -> int:
        with self._lock:
            record = self._tokens.get(email)
            if record is None or record.token != token or record.used:
                return 0
            record.used = True
            return 1
