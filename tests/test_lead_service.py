from __future__ import annotations

import re

import pytest

from src.adapters.phone_verifier import PhoneVerificationResult
from src.schemas.lead import CompleteLeadSubmission, FormLeadSubmission, PartialLeadSubmission
from src.services.delivery import DeliveryReport, DestinationOutcome
from src.services.errors import PhoneRejectedError, PhoneVerificationUnavailable
from src.services.lead import ClientInfo, LeadService, generate_lead_id, split_full_name, utc_now


class RecordingOrchestrator:
    def __init__(self, outcomes=None) -> None:
        self.leads = []
        self.outcomes = outcomes or [DestinationOutcome(name="webhook", success=True, attempts=1)]

    def deliver(self, lead):
        self.leads.append(lead)
        return DeliveryReport(outcomes=list(self.outcomes))


class StubVerification:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls = []

    def verify(self, phone: str):
        self.calls.append(phone)
        if self.error:
            raise self.error
        return self.result


CLIENT = ClientInfo(ip_address="203.0.113.9", user_agent="pytest")

COMPLETE_PAYLOAD = {
    "fullName": "John Doe",
    "email": "john@example.com",
    "phone": "(555) 123-4567",
    "address": "123 Main St, Springfield, IL 62701",
    "propertyCondition": "good",
    "timeline": "30days",
    "askingPrice": "$425,000",
}


def _service(verification=None, outcomes=None):
    orchestrator = RecordingOrchestrator(outcomes)
    return LeadService(orchestrator=orchestrator, phone_verification=verification), orchestrator


def test_lead_id_and_timestamp_formats():
    assert re.fullmatch(r"lead_\d{13}_[a-z0-9]{9}", generate_lead_id())
    assert utc_now().endswith("Z")


@pytest.mark.parametrize(
    "full_name, expected",
    [
        ("John Doe", ("John", "Doe")),
        ("Mary Ann van Dyke", ("Mary", "Ann van Dyke")),
        ("Cher", ("Cher", "Cher")),
    ],
)
def test_split_full_name(full_name, expected):
    assert split_full_name(full_name) == expected


def test_complete_submission_builds_normalized_record():
    service, orchestrator = _service()

    result = service.submit_complete(CompleteLeadSubmission.model_validate(COMPLETE_PAYLOAD), CLIENT)

    lead = orchestrator.leads[0]
    assert result.lead is lead
    assert result.warning is None
    assert result.message.startswith("Your information has been received")
    assert lead.first_name == "John"
    assert lead.last_name == "Doe"
    assert lead.price == 425000
    assert lead.asking_price == "$425,000"
    assert lead.source == "offer-page"
    assert lead.ip_address == "203.0.113.9"
    assert lead.address_line1 == "123 Main St"
    assert lead.city == "Springfield"
    assert lead.state == "IL"
    assert lead.postal_code == "62701"


def test_partial_submission_prefers_geocoder_components():
    service, orchestrator = _service()
    submission = PartialLeadSubmission.model_validate(
        {
            "address": "742 Evergreen Terrace, Springfield",
            "phone": "555.987.6543",
            "consent": True,
            "addressComponents": [
                {"long_name": "742", "short_name": "742", "types": ["street_number"]},
                {"long_name": "Evergreen Terrace", "short_name": "Evergreen Ter", "types": ["route"]},
                {"long_name": "Springfield", "short_name": "Springfield", "types": ["locality"]},
                {"long_name": "Oregon", "short_name": "OR", "types": ["administrative_area_level_1"]},
                {"long_name": "97403", "short_name": "97403", "types": ["postal_code"]},
            ],
        }
    )

    service.submit_partial(submission, CLIENT)

    lead = orchestrator.leads[0]
    assert lead.is_partial
    assert lead.phone == "(555) 987-6543"
    assert lead.address_line1 == "742 Evergreen Terrace"
    assert lead.state == "OR"
    assert lead.postal_code == "97403"
    assert lead.referral_source == "website"


def test_form_submission_keeps_existing_lead_id():
    service, orchestrator = _service()
    submission = FormLeadSubmission.model_validate(
        {
            "leadId": "lead_1700000000000_abc123xyz",
            "firstName": "Jane",
            "lastName": "Smith",
            "email": "Jane@Example.com",
            "phone": "5559876543",
            "address": "1 Elm St, Austin, TX 78701",
            "propertyCondition": "fair",
            "timeframe": "asap",
            "price": "1.5M",
            "isPropertyListed": True,
        }
    )

    result = service.submit_form(submission, CLIENT)

    assert result.lead.lead_id == "lead_1700000000000_abc123xyz"
    assert orchestrator.leads[0].email == "jane@example.com"
    assert orchestrator.leads[0].price == 1_500_000
    assert orchestrator.leads[0].full_name == "Jane Smith"


def test_partial_failures_surface_as_warning():
    service, _ = _service(
        outcomes=[
            DestinationOutcome(name="webhook", success=True, attempts=1),
            DestinationOutcome(name="crm", success=False, attempts=3, error="CRM returned 500"),
        ]
    )

    result = service.submit_complete(CompleteLeadSubmission.model_validate(COMPLETE_PAYLOAD), CLIENT)

    assert "crm: CRM returned 500" in result.warning


def test_verified_phone_details_are_recorded():
    verification = StubVerification(PhoneVerificationResult(is_valid=True, line_type="mobile", carrier="Verizon"))
    service, orchestrator = _service(verification)

    service.submit_complete(CompleteLeadSubmission.model_validate(COMPLETE_PAYLOAD), CLIENT)

    lead = orchestrator.leads[0]
    assert verification.calls == ["(555) 123-4567"]
    assert lead.phone_verified is True
    assert lead.phone_line_type == "mobile"
    assert lead.phone_carrier == "Verizon"


def test_complete_submission_rejects_invalid_phone_before_delivery():
    verification = StubVerification(PhoneVerificationResult(is_valid=False, error="Phone number appears to be invalid"))
    service, orchestrator = _service(verification)

    with pytest.raises(PhoneRejectedError, match="appears to be invalid"):
        service.submit_complete(CompleteLeadSubmission.model_validate(COMPLETE_PAYLOAD), CLIENT)
    assert orchestrator.leads == []


def test_partial_submission_flags_invalid_phone_but_delivers():
    verification = StubVerification(PhoneVerificationResult(is_valid=False, error="VoIP numbers are not accepted"))
    service, orchestrator = _service(verification)
    submission = PartialLeadSubmission.model_validate(
        {"address": "1 Elm St, Austin, TX 78701", "phone": "5559876543", "consent": True}
    )

    service.submit_partial(submission, CLIENT)

    assert orchestrator.leads[0].phone_verified is False


def test_verification_outage_falls_back_to_format_check():
    service, orchestrator = _service(StubVerification(error=PhoneVerificationUnavailable("quota reached")))

    service.submit_complete(CompleteLeadSubmission.model_validate(COMPLETE_PAYLOAD), CLIENT)

    assert orchestrator.leads[0].phone_verified is None
