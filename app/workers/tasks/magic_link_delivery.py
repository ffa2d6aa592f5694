"""
Magic-link delivery: emails the link carried by a magic_link_issued event.
"""
import html
import logging

import httpx
import pybreaker

from app.core.celery_app import celery_app
from app.services.mail.client import MailClient, MailError

logger = logging.getLogger(__name__)

SUBJECT = "Your sign-in link"


def render_magic_link_email(link_url: str, expires_at: str | None) -> tuple[str, str]:
    """(html, text) bodies. The link is the only secret in the message."""
    expiry = f" It expires at {expires_at}." if expires_at else ""
    text = f"Sign in with this link:\n\n{link_url}\n\nThe link works once.{expiry}\n"
    safe = html.escape(link_url, quote=True)
    body = (
        f'<p><a href="{safe}">Sign in</a></p>'
        f"<p>The link works once.{html.escape(expiry)}</p>"
        f'<p style="color:#888">If the button does not work, paste this address: {safe}</p>'
    )
    return body, text


@celery_app.task(
    bind=True,
    name="app.workers.tasks.magic_link_delivery.deliver_magic_link",
    max_retries=3,
    default_retry_delay=30,
)
def deliver_magic_link(self, event: dict) -> dict:
    details = event.get("details") or {}
    link_url = details.get("link_url")
    email = event.get("email")
    if not link_url or not email:
        return {"delivered": False, "skipped": "no_link"}

    mail = MailClient()
    if not mail.enabled:
        logger.warning("magic_link_delivery_disabled", extra={"email": email})
        return {"delivered": False, "skipped": "mail_disabled"}
    html_body, text_body = render_magic_link_email(link_url, details.get("expires_at"))
    try:
        message_id = mail.send(email, SUBJECT, html_body, text_body)
        return {"delivered": True, "message_id": message_id}
    except (MailError, httpx.HTTPError, pybreaker.CircuitBreakerError) as e:
        logger.warning(
            "magic_link_delivery_failed",
            extra={"email": email, "error": type(e).__name__},
        )
        raise self.retry(exc=e)
    finally:
        mail.close()
