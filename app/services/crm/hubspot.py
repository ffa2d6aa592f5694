"""
HubSpot CRM client using httpx sync client.
Sync interface for Celery workers; every call goes through the "hubspot" circuit breaker.
"""
import logging
import time

import httpx
import pybreaker

from app.core.config import settings
from app.services.circuit_breaker import get_circuit_breaker
from app.utils.metrics import crm_requests_total


logger = logging.getLogger(__name__)

CONTACTS_PATH = "/crm/v3/objects/contacts"
# Never overwritten on update: HubSpot owns lifecycle progression once the contact exists.
CREATE_ONLY_PROPERTIES = ("lifecyclestage",)


class HubSpotError(Exception):
    """HubSpot returned an unexpected status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class HubSpotClient:
    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        breaker: pybreaker.CircuitBreaker | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._token = token if token is not None else settings.hubspot_private_app_token
        self._base_url = (base_url or settings.hubspot_api_base).rstrip("/")
        self._breaker = breaker
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self._token)

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self._base_url,
                timeout=settings.http_client_timeout,
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    @property
    def breaker(self) -> pybreaker.CircuitBreaker:
        if self._breaker is None:
            self._breaker = get_circuit_breaker("hubspot")
        return self._breaker

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _request(self, operation: str, method: str, path: str, payload: dict) -> httpx.Response:
        started = time.monotonic()
        try:
            resp = self.breaker.call(self.client.request, method, path, json=payload)
        except pybreaker.CircuitBreakerError:
            crm_requests_total.labels(operation=operation, status="circuit_open").inc()
            raise
        except httpx.HTTPError:
            crm_requests_total.labels(operation=operation, status="transport_error").inc()
            raise
        crm_requests_total.labels(operation=operation, status=str(resp.status_code)).inc()
        logger.debug(
            "hubspot_request",
            extra={"path": path, "method": method, "status_code": resp.status_code,
                   "latency_ms": int((time.monotonic() - started) * 1000)},
        )
        return resp

    def find_contact_id(self, email: str) -> str | None:
        resp = self._request(
            "search",
            "POST",
            f"{CONTACTS_PATH}/search",
            {
                "filterGroups": [
                    {"filters": [{"propertyName": "email", "operator": "EQ", "value": email}]}
                ],
            },
        )
        if resp.status_code != 200:
            raise HubSpotError(f"search failed: {resp.text}", resp.status_code)
        results = resp.json().get("results") or []
        return results[0]["id"] if results else None

    def upsert_contact(self, email: str, properties: dict[str, str]) -> str:
        """
        Create the contact; on 409 (already exists) search by email and PATCH it,
        leaving create-only properties alone. Returns "created", "updated" or "missing".
        """
        props = {"email": email, **properties}
        resp = self._request("create", "POST", CONTACTS_PATH, {"properties": props})
        if resp.status_code in (200, 201):
            logger.info("hubspot_contact_created", extra={"email": email})
            return "created"
        if resp.status_code != 409:
            raise HubSpotError(f"create failed: {resp.text}", resp.status_code)

        contact_id = self.find_contact_id(email)
        if contact_id is None:
            logger.warning("hubspot_contact_missing_after_conflict", extra={"email": email})
            return "missing"
        update_props = {k: v for k, v in props.items() if k not in CREATE_ONLY_PROPERTIES}
        resp = self._request("update", "PATCH", f"{CONTACTS_PATH}/{contact_id}", {"properties": update_props})
        if resp.status_code != 200:
            raise HubSpotError(f"update failed: {resp.text}", resp.status_code)
        logger.info("hubspot_contact_updated", extra={"email": email})
        return "updated"
