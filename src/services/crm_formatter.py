"""Maps a normalized lead into the CRM contact body.

The CRM merges contacts that share an email or a name/phone pair. Partial
leads carry neither a name nor an email, so an identity strategy decides
what to send in their place.
"""
from __future__ import annotations

import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple

from src.schemas.lead import LeadRecord
from src.utils.address import ParsedAddress, split_full_address

BASE_TAGS = ["Website Lead", "PPC"]
PARTIAL_TAG = "Partial Lead"
COMPLETE_TAG = "Complete Lead"

PRICE_BRACKETS: List[Tuple[float, str]] = [
    (100_000, "<100k"),
    (250_000, "100k-250k"),
    (500_000, "250k-500k"),
    (1_000_000, "500k-1m"),
]


class IdentityStrategy(Protocol):
    def identity_for(self, lead: LeadRecord) -> Dict[str, str]:  # pragma: no cover - interface only
        ...


class PassthroughIdentityStrategy:
    """Send whatever name and email the visitor gave, nothing more."""

    def identity_for(self, lead: LeadRecord) -> Dict[str, str]:
        identity: Dict[str, str] = {}
        if lead.first_name:
            identity["firstName"] = lead.first_name
        if lead.last_name:
            identity["lastName"] = lead.last_name
        if lead.email:
            identity["email"] = lead.email
        return identity


class PlaceholderIdentityStrategy(PassthroughIdentityStrategy):
    """Give nameless partial leads a ``New{n}``/``Lead{n}`` name derived from the lead id.

    The number is the last six digits of the first digit run in the lead id,
    which keeps every partial contact distinct and traceable. Email is never
    synthesized; without one the key is left out entirely.
    """

    def __init__(self, digits: int = 6) -> None:
        self._digits = digits

    def fragment_for(self, lead_id: str) -> str:
        match = re.search(r"\d+", lead_id or "")
        source = match.group(0) if match else str(int(time.time() * 1000))
        return source[-self._digits:]

    def identity_for(self, lead: LeadRecord) -> Dict[str, str]:
        identity = super().identity_for(lead)
        if lead.is_partial and not (lead.first_name or lead.last_name):
            fragment = self.fragment_for(lead.lead_id)
            identity["firstName"] = f"New{fragment}"
            identity["lastName"] = f"Lead{fragment}"
        return identity


def price_bracket(price: Optional[float]) -> Optional[str]:
    if price is None:
        return None
    for ceiling, label in PRICE_BRACKETS:
        if price < ceiling:
            return label
    return "1m+"


@dataclass
class CrmContactFormatter:
    identity_strategy: IdentityStrategy

    def _address_for(self, lead: LeadRecord) -> ParsedAddress:
        if lead.address_line1 or lead.city or lead.state:
            return ParsedAddress(
                address_line1=lead.address_line1 or "",
                city=lead.city or "",
                state=lead.state or "",
                postal_code=lead.postal_code or "",
            )
        return split_full_address(lead.address)

    def _tags_for(self, lead: LeadRecord, bracket: Optional[str]) -> List[str]:
        tags = [*BASE_TAGS, PARTIAL_TAG if lead.is_partial else COMPLETE_TAG]
        if lead.property_condition:
            tags.append(f"condition:{lead.property_condition.value}")
        if lead.timeline:
            tags.append(f"timeline:{lead.timeline.value}")
        if bracket:
            tags.append(f"price:{bracket}")
        if lead.is_property_listed is not None:
            tags.append(f"listed:{'yes' if lead.is_property_listed else 'no'}")
        return tags

    def format(self, lead: LeadRecord) -> Dict[str, Any]:
        bracket = price_bracket(lead.price)
        contact: Dict[str, Any] = dict(self.identity_strategy.identity_for(lead))
        contact["phone"] = lead.phone

        address = self._address_for(lead)
        for key, value in (
            ("address1", address.address_line1),
            ("city", address.city),
            ("state", address.state),
            ("postalCode", address.postal_code),
        ):
            if value:
                contact[key] = value

        custom_fields = {
            "propertyAddress": lead.address,
            "propertyCondition": lead.property_condition.value if lead.property_condition else None,
            "timeframe": lead.timeline.value if lead.timeline else None,
            "askingPrice": lead.price if lead.price is not None else lead.asking_price,
            "priceBracket": bracket,
            "isPropertyListed": lead.is_property_listed,
            "submissionType": lead.submission_type.value,
            "leadId": lead.lead_id,
            "submissionTimestamp": datetime.now(timezone.utc).isoformat(),
            "originalEmail": lead.email or "Not provided",
        }
        contact["customField"] = {key: value for key, value in custom_fields.items() if value is not None}
        contact["tags"] = self._tags_for(lead, bracket)
        return contact
