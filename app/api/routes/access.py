"""
Content gate: called by the site before rendering a locked post.
"""
from fastapi import APIRouter, Body, Depends
from pydantic import AliasChoices, BaseModel, Field

from app.api.deps import get_access_gate
from app.paywall.access import AccessGate


router = APIRouter(prefix="/access", tags=["access"])


class AccessCheckRequest(BaseModel):
    # Optional at the schema level: the gate itself answers 400 with a readable message.
    email: str | None = Field(None, validation_alias=AliasChoices("email", "user_email"))
    content_id: str | None = Field(None, validation_alias=AliasChoices("content_id", "post_slug"))


class AccessCheckResponse(BaseModel):
    granted: bool
    reason: str


@router.post("/check", response_model=AccessCheckResponse)
def check_access(
    body: AccessCheckRequest = Body(...),
    gate: AccessGate = Depends(get_access_gate),
) -> AccessCheckResponse:
    decision = gate.evaluate_access(body.email, body.content_id)
    return AccessCheckResponse(granted=decision.granted, reason=decision.reason.value)
