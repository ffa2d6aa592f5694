"""
Magic-link auth routes.
POST /auth/magic-link sends a link (delivery is the mailer's job, the token never comes back here);
POST /auth/magic-link/verify redeems it for a session token.
"""
from fastapi import APIRouter, Body, Depends, Header, HTTPException, status
from pydantic import BaseModel

from app.api.deps import (
    get_magic_link_service,
    get_onboarding_service,
    get_session_tokens,
    get_store,
)
from app.paywall.config import get_site_url
from app.paywall.errors import InvalidOrExpired
from app.paywall.identity import normalize_email
from app.paywall.magic_link import MagicLinkService
from app.paywall.onboarding import OnboardingService
from app.services.auth.issue_rate_limit import (
    check_magic_link_rate_limit,
    reset_magic_link_attempts,
)
from app.services.auth.session_tokens import SessionTokenService
from app.storage.base import AccessStore

router = APIRouter(prefix="/auth", tags=["auth"])


class MagicLinkRequest(BaseModel):
    email: str | None = None
    source: str | None = None


class MagicLinkResponse(BaseModel):
    success: bool
    message: str
    expires_at: str


class VerifyRequest(BaseModel):
    email: str | None = None
    token: str | None = None


class VerifyResponse(BaseModel):
    ok: bool
    email: str
    session_token: str
    redirect_url: str


class SessionInfo(BaseModel):
    email: str
    tier: str | None
    unlocks_count: int


@router.post("/magic-link", response_model=MagicLinkResponse)
def request_magic_link(
    body: MagicLinkRequest = Body(...),
    onboarding: OnboardingService = Depends(get_onboarding_service),
) -> MagicLinkResponse:
    """
    Inbound signup / re-login. Creates the user at tier1 if new; never downgrades.
    Rate limited per email.
    """
    email = normalize_email(body.email)
    if not check_magic_link_rate_limit(email):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many link requests. Try again later.",
        )
    result = onboarding.invite(email, source=body.source)
    return MagicLinkResponse(
        success=True,
        message="Magic link sent to your email",
        expires_at=result.link.expires_at.isoformat(),
    )


@router.post("/magic-link/verify", response_model=VerifyResponse)
def verify_magic_link(
    body: VerifyRequest = Body(...),
    magic_links: MagicLinkService = Depends(get_magic_link_service),
    sessions: SessionTokenService = Depends(get_session_tokens),
) -> VerifyResponse:
    result = magic_links.verify(body.email, body.token)
    reset_magic_link_attempts(result.email)
    return VerifyResponse(
        ok=True,
        email=result.email,
        session_token=sessions.create(result.email),
        redirect_url=get_site_url(),
    )


@router.get("/me", response_model=SessionInfo)
def current_session(
    authorization: str | None = Header(None),
    sessions: SessionTokenService = Depends(get_session_tokens),
    store: AccessStore = Depends(get_store),
) -> SessionInfo:
    """Who holds this session token and at which tier."""
    token = ""
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    email = sessions.read(token) if token else None
    if email is None:
        raise InvalidOrExpired("Invalid or expired session")
    record = store.get_tier_record(email)
    return SessionInfo(
        email=email,
        tier=record.tier if record else None,
        unlocks_count=record.unlocks_count if record else 0,
    )
