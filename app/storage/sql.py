"""
SQLAlchemy AccessStore over allowed_users / user_unlocks / magic_tokens.
Each write commits on its own: one call = one unit of work.
"""
from __future__ import annotations

import functools
import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

from sqlalchemy import func, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.models.allowed_user import AllowedUser
from app.models.magic_token import MagicToken
from app.models.user_unlock import UserUnlock
from app.paywall.errors import DuplicateGrant, StorageUnavailable
from app.storage.base import AccessStore, TierRecord, TokenRecord, UnlockGrant

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo even for DateTime(timezone=True)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def translate_errors(method: F) -> F:
    """Turn connection-level DB failures into StorageUnavailable; everything else propagates."""

    @functools.wraps(method)
    def wrapper(self: "SqlAccessStore", *args: Any, **kwargs: Any) -> Any:
        try:
            return method(self, *args, **kwargs)
        except IntegrityError:
            raise
        except OperationalError as e:
            self.db.rollback()
            logger.warning("storage_unavailable", extra={"error": type(e).__name__})
            raise StorageUnavailable(str(e.orig) if e.orig else str(e)) from e
        except DBAPIError as e:
            if not e.connection_invalidated:
                raise
            self.db.rollback()
            logger.warning("storage_unavailable", extra={"error": "connection_invalidated"})
            raise StorageUnavailable("database connection lost") from e

    return wrapper  # type: ignore[return-value]


class SqlAccessStore(AccessStore):
    def __init__(self, db: Session) -> None:
        self.db = db

    # ----- Tier records -----

    @translate_errors
    def get_tier_record(self, email: str) -> TierRecord | None:
        row = (
            self.db.query(AllowedUser)
            .filter(AllowedUser.email == email)
            .populate_existing()
            .one_or_none()
        )
        if row is None:
            return None
        return TierRecord(
            email=row.email,
            tier=row.status,
            unlocks_count=row.unlocks_count or 0,
            source=row.source,
            founder_led_mql=bool(row.founder_led_mql),
        )

    @translate_errors
    def insert_tier_record(
        self,
        email: str,
        tier: str,
        *,
        source: str | None = None,
        founder_led_mql: bool = False,
    ) -> bool:
        if self.db.query(AllowedUser.email).filter(AllowedUser.email == email).first():
            return False
        row = AllowedUser(
            email=email,
            status=tier,
            unlocks_count=0,
            source=source,
            founder_led_mql=founder_led_mql,
        )
        try:
            self.db.add(row)
            self.db.commit()
            return True
        except IntegrityError:
            self.db.rollback()
            return False

    @translate_errors
    def upgrade_tier(self, email: str, new_tier: str, from_tiers: Iterable[str]) -> int:
        allowed = list(from_tiers)
        if not allowed:
            return 0
        result = self.db.execute(
            update(AllowedUser)
            .where(AllowedUser.email == email, AllowedUser.status.in_(allowed))
            .values(status=new_tier, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount

    @translate_errors
    def increment_unlocks_count(self, email: str) -> None:
        self.db.execute(
            update(AllowedUser)
            .where(AllowedUser.email == email)
            .values(unlocks_count=AllowedUser.unlocks_count + 1)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

    # ----- Unlock ledger -----

    @translate_errors
    def get_grant(self, email: str, content_id: str) -> UnlockGrant | None:
        row = (
            self.db.query(UserUnlock)
            .filter(UserUnlock.user_email == email, UserUnlock.content_id == content_id)
            .one_or_none()
        )
        if row is None:
            return None
        return UnlockGrant(email=row.user_email, content_id=row.content_id, created_at=_as_utc(row.created_at))

    @translate_errors
    def count_grants(self, email: str) -> int:
        return (
            self.db.query(func.count(UserUnlock.id))
            .filter(UserUnlock.user_email == email)
            .scalar()
        ) or 0

    @translate_errors
    def insert_grant(self, email: str, content_id: str) -> UnlockGrant:
        row = UserUnlock(user_email=email, content_id=content_id, created_at=datetime.now(timezone.utc))
        try:
            self.db.add(row)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateGrant(f"{email}:{content_id}") from e
        return UnlockGrant(email=email, content_id=content_id, created_at=_as_utc(row.created_at))

    # ----- Magic tokens -----

    @translate_errors
    def get_token(self, email: str) -> TokenRecord | None:
        row = (
            self.db.query(MagicToken)
            .filter(MagicToken.email == email)
            .populate_existing()
            .one_or_none()
        )
        if row is None:
            return None
        return TokenRecord(
            email=row.email,
            token=row.token,
            issued_at=_as_utc(row.issued_at),
            expires_at=_as_utc(row.expires_at),
            used=bool(row.used),
        )

    @translate_errors
    def upsert_token(self, record: TokenRecord) -> None:
        values = {
            "token": record.token,
            "issued_at": record.issued_at,
            "expires_at": record.expires_at,
            "used": record.used,
        }
        result = self.db.execute(
            update(MagicToken)
            .where(MagicToken.email == record.email)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            self.db.commit()
            return
        try:
            self.db.add(MagicToken(email=record.email, **values))
            self.db.commit()
        except IntegrityError:
            # Concurrent first issue for the same email: last writer wins.
            self.db.rollback()
            self.db.execute(
                update(MagicToken)
                .where(MagicToken.email == record.email)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()

    @translate_errors
    def mark_token_used(self, email: str, token: str) -> int:
        result = self.db.execute(
            update(MagicToken)
            .where(
                MagicToken.email == email,
                MagicToken.token == token,
                MagicToken.used.is_(False),
            )
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount
