"""
Main FastAPI application for the paywall gate.
Serves access checks, magic-link auth, tier webhooks, admin endpoints, health and metrics.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.logging import configure_logging
from app.api.routes import access, admin, auth, health, metrics, tiers, webhooks
from app.paywall.errors import (
    AccessError,
    InvalidOrExpired,
    NotAllowed,
    StorageUnavailable,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first; anything else derived from AccessError is a 400.
ERROR_STATUS: tuple[tuple[type[AccessError], int], ...] = (
    (ValidationError, 400),
    (InvalidOrExpired, 401),
    (NotAllowed, 403),
    (StorageUnavailable, 503),
)


def warn_insecure_settings() -> None:
    """Startup warnings for settings that leave endpoints open."""
    if not settings.webhook_secret:
        logger.warning(
            "webhook_secret_unset",
            extra={"path": "/webhooks", "error": "WEBHOOK_SECRET is empty: tier webhooks accept unsigned calls"},
        )
    if not settings.admin_api_key:
        logger.warning(
            "admin_api_key_unset",
            extra={"path": "/admin", "error": "ADMIN_API_KEY is empty: admin and tier endpoints are disabled"},
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    warn_insecure_settings()
    yield


app = FastAPI(
    title="Paywall Gate API",
    description="Tiered content access, magic-link auth and CRM-driven tier upgrades",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000", settings.site_url.rstrip("/")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AccessError)
async def access_error_handler(request: Request, exc: AccessError) -> JSONResponse:
    status_code = 400
    for exc_type, code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            status_code = code
            break
    if status_code >= 500:
        logger.error(
            "storage_unavailable",
            extra={"path": request.url.path, "method": request.method, "error": str(exc)},
        )
    return JSONResponse(status_code=status_code, content={"error": exc.message or exc.code})


# Routers
app.include_router(health.router, tags=["health"])
app.include_router(access.router)
app.include_router(auth.router)
app.include_router(tiers.router)
app.include_router(webhooks.router)
app.include_router(admin.router)
app.include_router(metrics.router)
