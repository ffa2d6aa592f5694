import logging

from fastapi import APIRouter, Depends, Response
import redis
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness probe - always returns 200 if app is running."""
    return {"status": "ok"}


@router.get("/ready")
def readiness(response: Response, db: Session = Depends(get_db)) -> dict:
    """Readiness probe - 503 if the database or Redis (rate limits, breaker state) is down."""
    checks = {"database": "ok", "redis": "ok"}
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        checks["database"] = str(e)
    try:
        redis.Redis.from_url(settings.redis_url, decode_responses=True).ping()
    except redis.RedisError as e:
        checks["redis"] = str(e)

    if any(v != "ok" for v in checks.values()):
        logger.warning("readiness_failed", extra={"error": str(checks)})
        response.status_code = 503
        return {"status": "not_ready", "checks": checks}
    return {"status": "ready", "checks": checks}
