from __future__ import annotations

import re

from src.schemas.lead import LeadRecord, PropertyCondition, SubmissionType, Timeline
from src.services.crm_formatter import (
    CrmContactFormatter,
    PassthroughIdentityStrategy,
    PlaceholderIdentityStrategy,
    price_bracket,
)


def _partial_lead(**overrides) -> LeadRecord:
    fields = dict(
        lead_id="lead_1712345678901_k3j9x0abc",
        timestamp="2024-04-05T12:00:00Z",
        last_updated="2024-04-05T12:00:00Z",
        submission_type=SubmissionType.PARTIAL,
        phone="(555) 123-4567",
        address="742 Evergreen Terrace, Springfield, OR 97403",
        consent=True,
    )
    fields.update(overrides)
    return LeadRecord(**fields)


def _complete_lead(**overrides) -> LeadRecord:
    fields = dict(
        lead_id="lead_1712345678901_k3j9x0abc",
        timestamp="2024-04-05T12:00:00Z",
        last_updated="2024-04-05T12:05:00Z",
        submission_type=SubmissionType.COMPLETE,
        first_name="John",
        last_name="Doe",
        email="john@example.com",
        phone="(555) 123-4567",
        address="1600 Pennsylvania Ave NW, Washington, DC 20500",
        property_condition=PropertyCondition.GOOD,
        timeline=Timeline.DAYS_30,
        asking_price="$425,000",
        price=425000,
        is_property_listed=False,
    )
    fields.update(overrides)
    return LeadRecord(**fields)


def _formatter(strategy=None) -> CrmContactFormatter:
    return CrmContactFormatter(identity_strategy=strategy or PlaceholderIdentityStrategy())


def test_anonymous_partial_lead_gets_placeholder_name_and_no_email():
    contact = _formatter().format(_partial_lead())

    assert "email" not in contact
    first = re.fullmatch(r"New(\d+)", contact["firstName"])
    last = re.fullmatch(r"Lead(\d+)", contact["lastName"])
    assert first and last
    assert first.group(1) == last.group(1) == "678901"
    assert "Partial Lead" in contact["tags"]
    assert contact["customField"]["originalEmail"] == "Not provided"


def test_partial_lead_with_name_keeps_real_name():
    contact = _formatter().format(_partial_lead(first_name="Ana", last_name="Lopez"))
    assert contact["firstName"] == "Ana"
    assert contact["lastName"] == "Lopez"


def test_complete_lead_uses_real_identity_and_complete_tag():
    contact = _formatter().format(_complete_lead())

    assert contact["firstName"] == "John"
    assert contact["lastName"] == "Doe"
    assert contact["email"] == "john@example.com"
    assert contact["phone"] == "(555) 123-4567"
    assert "Complete Lead" in contact["tags"]
    assert "Partial Lead" not in contact["tags"]


def test_complete_lead_never_gets_placeholder_name():
    contact = _formatter().format(_complete_lead(first_name=None, last_name=None))
    assert "firstName" not in contact
    assert "lastName" not in contact


def test_address_falls_back_to_splitting_full_string():
    contact = _formatter().format(_complete_lead())

    assert contact["address1"] == "1600 Pennsylvania Ave NW"
    assert contact["city"] == "Washington"
    assert contact["state"] == "DC"
    assert contact["postalCode"] == "20500"


def test_structured_address_fields_win_over_string_split():
    contact = _formatter().format(
        _complete_lead(address_line1="1600 Pennsylvania Avenue NW", city="Washington", state="DC", postal_code="20500")
    )
    assert contact["address1"] == "1600 Pennsylvania Avenue NW"


def test_property_metadata_is_encoded_as_fields_and_tags():
    contact = _formatter().format(_complete_lead())

    custom = contact["customField"]
    assert custom["propertyCondition"] == "good"
    assert custom["timeframe"] == "30days"
    assert custom["askingPrice"] == 425000
    assert custom["priceBracket"] == "250k-500k"
    assert custom["isPropertyListed"] is False
    assert custom["submissionType"] == "complete"
    for tag in ["condition:good", "timeline:30days", "price:250k-500k", "listed:no"]:
        assert tag in contact["tags"]


def test_passthrough_strategy_disables_placeholder_names():
    contact = _formatter(PassthroughIdentityStrategy()).format(_partial_lead())
    assert "firstName" not in contact
    assert "email" not in contact


def test_price_brackets():
    assert price_bracket(None) is None
    assert price_bracket(99_999) == "<100k"
    assert price_bracket(100_000) == "100k-250k"
    assert price_bracket(999_999) == "500k-1m"
    assert price_bracket(1_500_000) == "1m+"
