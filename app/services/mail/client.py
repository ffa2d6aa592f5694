"""
Transactional mail client (Resend-compatible HTTP API) using httpx sync client.
Used by the Celery delivery task; every call goes through the "mail" circuit breaker.
"""
import logging
import time

import httpx
import pybreaker

from app.core.config import settings
from app.services.circuit_breaker import get_circuit_breaker
from app.utils.metrics import mail_requests_total


logger = logging.getLogger(__name__)

EMAILS_PATH = "/emails"


class MailError(Exception):
    """Mail API rejected the message."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MailClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        sender: str | None = None,
        breaker: pybreaker.CircuitBreaker | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.mail_api_key
        self._base_url = (base_url or settings.mail_api_base).rstrip("/")
        self.sender = sender or settings.mail_from
        self._breaker = breaker
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self._base_url,
                timeout=settings.http_client_timeout,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    @property
    def breaker(self) -> pybreaker.CircuitBreaker:
        if self._breaker is None:
            self._breaker = get_circuit_breaker("mail")
        return self._breaker

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def send(self, to: str, subject: str, html: str, text: str) -> str | None:
        """Send one message. Returns the provider message id."""
        payload = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
            "text": text,
        }
        started = time.monotonic()
        try:
            resp = self.breaker.call(self.client.post, EMAILS_PATH, json=payload)
        except pybreaker.CircuitBreakerError:
            mail_requests_total.labels(status="circuit_open").inc()
            raise
        except httpx.HTTPError:
            mail_requests_total.labels(status="transport_error").inc()
            raise
        mail_requests_total.labels(status=str(resp.status_code)).inc()
        if resp.status_code not in (200, 201, 202):
            raise MailError(f"send failed: {resp.text}", resp.status_code)
        logger.info(
            "mail_sent",
            extra={"email": to, "status_code": resp.status_code,
                   "latency_ms": int((time.monotonic() - started) * 1000)},
        )
        return (resp.json() or {}).get("id")
