"""
Per-email throttle for magic-link requests, so the invite endpoint can't be used to flood an inbox.
"""
import hashlib
import logging

import redis

from app.core.config import settings

logger = logging.getLogger("auth")


def _key(email: str) -> str:
    digest = hashlib.sha256(email.encode("utf-8")).hexdigest()[:32]
    return f"magic_link_requests:{digest}"


def check_magic_link_rate_limit(email: str, client: redis.Redis | None = None) -> bool:
    """
    Check if another link may be issued for this (normalized) email.
    Returns True if allowed, False if rate limited. Increments counter on each call.
    """
    try:
        client = client or redis.Redis.from_url(settings.redis_url, decode_responses=True)
        key = _key(email)
        current = client.incr(key)
        if current == 1:
            client.expire(key, settings.magic_link_request_window_seconds)
        if current > settings.magic_link_requests_per_window:
            logger.warning("magic_link_rate_limited", extra={"email": email})
            return False
        return True
    except redis.RedisError as e:
        logger.warning("magic_link_rate_limit_redis_error", extra={"error": str(e)})
        return True  # Fail open - never block sign-in because Redis is down


def reset_magic_link_attempts(email: str, client: redis.Redis | None = None) -> None:
    """Reset counter after the link is redeemed."""
    try:
        client = client or redis.Redis.from_url(settings.redis_url, decode_responses=True)
        client.delete(_key(email))
    except redis.RedisError as e:
        logger.warning("magic_link_rate_limit_redis_error", extra={"error": str(e)})
