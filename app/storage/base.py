from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime


@dataclass
class TierRecord:
    email: str
    tier: str  # raw stored value; may be unrecognized
    unlocks_count: int = 0
    source: str | None = None
    founder_led_mql: bool = False


@dataclass
class UnlockGrant:
    email: str
    content_id: str
    created_at: datetime


@dataclass
class TokenRecord:
    email: str
    token: str
    issued_at: datetime
    expires_at: datetime
    used: bool = False


class AccessStore(ABC):
    """
    Storage contract for tier records, unlock grants and magic tokens.
    Emails passed in are already normalized. Conditional writes return affected row counts.
    """

    # ----- Tier records -----

    @abstractmethod
    def get_tier_record(self, email: str) -> TierRecord | None:
        raise NotImplementedError

    @abstractmethod
    def insert_tier_record(
        self,
        email: str,
        tier: str,
        *,
        source: str | None = None,
        founder_led_mql: bool = False,
    ) -> bool:
        """Insert if absent. False when a record already exists (left untouched)."""
        raise NotImplementedError

    @abstractmethod
    def upgrade_tier(self, email: str, new_tier: str, from_tiers: Iterable[str]) -> int:
        """Set tier=new_tier where email matches and the stored tier is one of from_tiers."""
        raise NotImplementedError

    @abstractmethod
    def increment_unlocks_count(self, email: str) -> None:
        raise NotImplementedError

    # ----- Unlock ledger -----

    @abstractmethod
    def get_grant(self, email: str, content_id: str) -> UnlockGrant | None:
        raise NotImplementedError

    @abstractmethod
    def count_grants(self, email: str) -> int:
        raise NotImplementedError

    @abstractmethod
    def insert_grant(self, email: str, content_id: str) -> UnlockGrant:
        """Raises DuplicateGrant when (email, content_id) already exists."""
        raise NotImplementedError

    # ----- Magic tokens -----

    @abstractmethod
    def get_token(self, email: str) -> TokenRecord | None:
        raise NotImplementedError

    @abstractmethod
    def upsert_token(self, record: TokenRecord) -> None:
        """Replace whatever token is stored for record.email."""
        raise NotImplementedError

    @abstractmethod
    def mark_token_used(self, email: str, token: str) -> int:
        """Set used=true where email and token match and used is false."""
        raise NotImplementedError
