"""
Server-to-server tier changes (admin key). Downgrades are reported, never applied.
"""
from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from app.api.deps import get_tier_service, require_admin_key
from app.paywall.models import TierChangeResult
from app.paywall.tiers import TierService


router = APIRouter(prefix="/tiers", tags=["tiers"], dependencies=[Depends(require_admin_key)])


class TierChangeRequest(BaseModel):
    email: str | None = None
    tier: str | None = None
    source: str | None = "admin_api"


@router.post("/change", response_model=TierChangeResult)
def change_tier(
    body: TierChangeRequest = Body(...),
    tiers: TierService = Depends(get_tier_service),
) -> TierChangeResult:
    return tiers.request_tier_change(body.email, body.tier, source=body.source)
