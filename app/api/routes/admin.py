"""
Admin routes.
generate-link: outbound invite (X-Admin-Key; X-Admin-Email is the audited admin identity).
access/settings: runtime unlock quotas (X-Admin-Key).
"""
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Header
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import get_onboarding_service, require_admin_key
from app.db.session import get_db
from app.paywall.onboarding import GENERATE_LINK_ACTION, OnboardingService
from app.services.access_settings.settings_service import AccessSettingsService
from app.services.audit.service import AuditService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class GenerateLinkRequest(BaseModel):
    email: str | None = None
    promo_report_slug: str | None = None


class GenerateLinkResponse(BaseModel):
    success: bool
    link: str
    redirect_url: str
    expires_at: str


@router.post(
    "/generate-link",
    response_model=GenerateLinkResponse,
    dependencies=[Depends(require_admin_key)],
)
def generate_link(
    body: GenerateLinkRequest = Body(...),
    x_admin_email: str | None = Header(None),
    onboarding: OnboardingService = Depends(get_onboarding_service),
    db: Session = Depends(get_db),
) -> GenerateLinkResponse:
    result = onboarding.admin_generate_link(x_admin_email, body.email, body.promo_report_slug)
    AuditService(db).log(
        admin_email=result.admin_email,
        action=GENERATE_LINK_ACTION,
        target_email=result.link.email,
        promo_report_slug=result.promo_report_slug,
    )
    return GenerateLinkResponse(
        success=True,
        link=result.url,
        redirect_url=result.redirect_url,
        expires_at=result.link.expires_at.isoformat(),
    )


@router.get("/access/settings", dependencies=[Depends(require_admin_key)])
def get_access_settings(db: Session = Depends(get_db)) -> dict:
    return AccessSettingsService(db).as_dict()


@router.put("/access/settings", dependencies=[Depends(require_admin_key)])
def update_access_settings(
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
) -> dict:
    data = AccessSettingsService(db).update(payload)
    logger.info("access_settings_updated", extra={"outcome": "applied"})
    return data
