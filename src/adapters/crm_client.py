from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import requests

from src.services.errors import CrmAuthenticationError, CrmError, DuplicateContactError

logger = logging.getLogger(__name__)

AUTH_FAILURE_STATUSES = (401, 403)
DUPLICATE_STATUSES = (400, 409, 422)


class CrmAuthStrategy(Protocol):
    def headers(self) -> Dict[str, str]:  # pragma: no cover - interface only
        ...


@dataclass
class BearerTokenAuth:
    """Static API key or private integration token sent as a bearer token."""

    token: str

    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@dataclass
class CrmConfig:
    endpoint: str
    api_key: str
    location_id: str = ""
    api_version: str = "2021-07-28"
    source: str = "Website Form"
    timeout: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(self.endpoint and self.api_key)


@dataclass
class CrmClient:
    """Contact create/update calls against the CRM's REST contacts endpoint."""

    config: CrmConfig
    auth: Optional[CrmAuthStrategy] = None
    session: Any = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.auth is None:
            self.auth = BearerTokenAuth(self.config.api_key)
        if self.session is None:
            self.session = requests.Session()

    def is_enabled(self) -> bool:
        return self.config.enabled

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Version": self.config.api_version,
        }
        headers.update(self.auth.headers())
        return headers

    def _request(self, method: str, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.request(
                method, url, json=body, headers=self._headers(), timeout=self.config.timeout
            )
        except requests.RequestException as exc:
            raise CrmError(f"CRM request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text}
        if not isinstance(data, dict):
            data = {"message": str(data)}

        if response.ok:
            return data

        message = str(data.get("message") or data.get("error") or f"API returned {response.status_code}")
        status_code = response.status_code
        if status_code in AUTH_FAILURE_STATUSES:
            raise CrmAuthenticationError(f"Authentication failed ({status_code}): {message}", status_code)
        if status_code in DUPLICATE_STATUSES and "duplicat" in message.lower():
            raise DuplicateContactError(message, self._existing_contact_id(data), status_code)
        if status_code == 429:
            raise CrmError("Rate limit exceeded", status_code)
        raise CrmError(f"CRM returned {status_code}: {message}", status_code)

    @staticmethod
    def _existing_contact_id(data: Dict[str, Any]) -> Optional[str]:
        meta = data.get("meta") or {}
        contact = data.get("contact") or {}
        return meta.get("contactId") or data.get("contactId") or contact.get("id")

    def create_contact(self, contact: Dict[str, Any]) -> Optional[str]:
        body = {"source": self.config.source, **contact}
        if self.config.location_id:
            body.setdefault("locationId", self.config.location_id)
        data = self._request("POST", self.config.endpoint, body)
        contact_id = (data.get("contact") or {}).get("id")
        logger.info("CRM contact created: %s", contact_id)
        return contact_id

    def update_contact(self, contact_id: str, contact: Dict[str, Any]) -> Optional[str]:
        url = f"{self.config.endpoint.rstrip('/')}/{contact_id}"
        data = self._request("PUT", url, dict(contact))
        logger.info("CRM contact updated: %s", contact_id)
        return (data.get("contact") or {}).get("id") or contact_id

    def upsert_contact(self, contact: Dict[str, Any]) -> Optional[str]:
        """Create the contact; when the CRM reports a duplicate, update that record instead."""
        try:
            return self.create_contact(contact)
        except DuplicateContactError as exc:
            if not exc.contact_id:
                raise
            logger.info("CRM reported duplicate contact %s; updating instead", exc.contact_id)
            return self.update_contact(exc.contact_id, contact)
