"""
Magic links: issue() кладёт новый токен (перезаписывая прежний), verify() гасит его ровно один раз.
"""
from __future__ import annotations

import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable
from urllib.parse import urlencode

from app.paywall.errors import InvalidOrExpired, ValidationError
from app.paywall.events import MAGIC_LINK_ISSUED, MAGIC_LINK_VERIFIED, EventDispatcher, emit_event
from app.paywall.identity import normalize_email
from app.paywall.models import IssuedMagicLink, VerificationResult
from app.storage.base import AccessStore, TokenRecord
from app.utils.metrics import magic_link_verifications_total, magic_links_issued_total

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=24)
TOKEN_BYTES = 32  # 256 bits


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MagicLinkService:
    def __init__(
        self,
        store: AccessStore,
        *,
        ttl: timedelta = DEFAULT_TTL,
        base_url: str = "",
        dispatcher: EventDispatcher | None = None,
        now: Callable[[], datetime] = _utcnow,
        token_factory: Callable[[], str] = generate_token,
    ) -> None:
        self.store = store
        self.ttl = ttl
        self.base_url = base_url
        self.dispatcher = dispatcher
        self._now = now
        self._token_factory = token_factory

    def issue(
        self,
        email: str,
        *,
        redirect_to: str | None = None,
        deliver: bool = True,
    ) -> IssuedMagicLink:
        """
        Mint a token for email. Any earlier token for the same email stops matching.
        deliver=False marks the link as handed over by the caller, not emailed.
        """
        email = normalize_email(email)
        issued_at = self._now()
        record = TokenRecord(
            email=email,
            token=self._token_factory(),
            issued_at=issued_at,
            expires_at=issued_at + self.ttl,
            used=False,
        )
        self.store.upsert_token(record)
        magic_links_issued_total.inc()
        logger.info("magic_link_issued", extra={"email": email})

        link = IssuedMagicLink(
            email=email,
            token=record.token,
            issued_at=record.issued_at,
            expires_at=record.expires_at,
        )
        emit_event(
            self.dispatcher,
            MAGIC_LINK_ISSUED,
            email,
            {
                "expires_at": link.expires_at.isoformat(),
                "link_url": self.build_link(link, redirect_to=redirect_to),
                "deliver": deliver,
            },
        )
        return link

    def verify(self, email: str, token: str) -> VerificationResult:
        """
        Redeem a token. Every failure (no record, mismatch, used, expired, lost race)
        raises the same InvalidOrExpired.
        """
        email = normalize_email(email)
        if not isinstance(token, str) or not token:
            raise ValidationError("Token and email are required")

        record = self.store.get_token(email)
        if (
            record is None
            or not hmac.compare_digest(record.token.encode(), token.encode())
            or record.used
            or self._now() > record.expires_at
        ):
            self._reject(email)

        # Conditional update: only one concurrent verifier gets rowcount 1.
        if self.store.mark_token_used(email, token) != 1:
            self._reject(email)

        magic_link_verifications_total.labels(status="ok").inc()
        logger.info("magic_link_verified", extra={"email": email})
        emit_event(self.dispatcher, MAGIC_LINK_VERIFIED, email)
        return VerificationResult(ok=True, email=email)

    def build_link(self, link: IssuedMagicLink, *, redirect_to: str | None = None) -> str:
        params = {"email": link.email, "token": link.token}
        if redirect_to:
            params["redirect_to"] = redirect_to
        separator = "&" if "?" in self.base_url else "?"
        return f"{self.base_url}{separator}{urlencode(params)}"

    def _reject(self, email: str) -> None:
        magic_link_verifications_total.labels(status="invalid_or_expired").inc()
        logger.info("magic_link_rejected", extra={"email": email})
        raise InvalidOrExpired()
