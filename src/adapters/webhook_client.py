from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict

import requests

from src.schemas.lead import LeadRecord
from src.services.errors import DestinationError

logger = logging.getLogger(__name__)

PLACEHOLDER_URLS = {"", "YOUR_ZAPIER_WEBHOOK_URL"}


@dataclass
class WebhookConfig:
    url: str
    timeout: float = 10.0

    @property
    def enabled(self) -> bool:
        return self.url.strip() not in PLACEHOLDER_URLS


@dataclass
class WebhookClient:
    """Posts the normalized lead to an automation webhook (Zapier style)."""

    config: WebhookConfig

    def is_enabled(self) -> bool:
        return self.config.enabled

    def build_payload(self, lead: LeadRecord) -> Dict[str, Any]:
        payload = lead.to_payload()
        payload.setdefault("fullName", " ".join(filter(None, [lead.first_name, lead.last_name])))
        if lead.timeline:
            payload["timeframe"] = lead.timeline.value
        payload["phoneRaw"] = "".join(ch for ch in lead.phone if ch.isdigit())
        payload["formattedTimestamp"] = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        return payload

    def send(self, lead: LeadRecord) -> Dict[str, Any]:
        if not self.is_enabled():
            raise DestinationError("Webhook URL is not configured")

        try:
            response = requests.post(
                self.config.url,
                json=self.build_payload(lead),
                headers={"Content-Type": "application/json"},
                timeout=self.config.timeout,
            )
        except requests.RequestException as exc:
            raise DestinationError(f"Webhook request failed: {exc}") from exc

        if not response.ok:
            raise DestinationError(
                f"Webhook returned status {response.status_code}: {response.text[:200]}"
            )

        logger.info("Webhook accepted lead %s", lead.lead_id)
        try:
            return response.json()
        except ValueError:
            return {"status": response.status_code}
