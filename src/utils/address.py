from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Union

from src.schemas.address import AddressComponent

logger = logging.getLogger(__name__)

# Order matters: the first populated type wins.
CITY_COMPONENT_TYPES = ("locality", "sublocality", "postal_town", "administrative_area_level_2")


@dataclass
class ParsedAddress:
    address_line1: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    street_number: str = ""
    route: str = ""


@dataclass
class AddressValidation:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def parse_address_components(
    components: Iterable[Union[AddressComponent, Mapping[str, object]]],
) -> ParsedAddress:
    """Collapse geocoder address components into street line, city, state and postal code."""
    parsed = ParsedAddress()
    city_candidates: dict[str, str] = {}

    for raw in components:
        component = raw if isinstance(raw, AddressComponent) else AddressComponent.model_validate(raw)
        types = component.types

        # First matching component wins.
        if "street_number" in types and not parsed.street_number:
            parsed.street_number = component.long_name
        if "route" in types and not parsed.route:
            parsed.route = component.long_name
        for city_type in CITY_COMPONENT_TYPES:
            if city_type in types and component.long_name:
                city_candidates.setdefault(city_type, component.long_name)
        if "administrative_area_level_1" in types and not parsed.state:
            parsed.state = component.short_name
        if "postal_code" in types and not parsed.postal_code:
            parsed.postal_code = component.long_name

    parsed.city = next(
        (city_candidates[city_type] for city_type in CITY_COMPONENT_TYPES if city_type in city_candidates),
        "",
    )
    parsed.address_line1 = " ".join(part for part in (parsed.street_number, parsed.route) if part).strip()
    return parsed


def validate_address(address: ParsedAddress) -> AddressValidation:
    errors: List[str] = []
    if not (address.address_line1 or "").strip():
        errors.append("Street address is required")
    if not (address.city or "").strip():
        errors.append("City is required")
    if not (address.state or "").strip():
        errors.append("State is required")
    if not (address.postal_code or "").strip():
        logger.warning("Address is missing postal code")
    return AddressValidation(is_valid=not errors, errors=errors)


def split_full_address(address: Optional[str]) -> ParsedAddress:
    """Best-effort split of an already formatted "street, city, STATE ZIP" string.

    Only a fallback for when structured components were not supplied; it does
    not understand unit numbers, countries or any other layout.
    """
    parsed = ParsedAddress()
    if not address:
        return parsed
    parts = [part.strip() for part in address.split(",")]
    if len(parts) < 3:
        return parsed
    parsed.address_line1 = parts[0]
    parsed.city = parts[1]
    state_zip = parts[2].split()
    if state_zip:
        parsed.state = state_zip[0]
    if len(state_zip) >= 2:
        parsed.postal_code = state_zip[1]
    return parsed
