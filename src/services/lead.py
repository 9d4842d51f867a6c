from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

from src.schemas.lead import (
    CompleteLeadSubmission,
    FormLeadSubmission,
    LeadRecord,
    PartialLeadSubmission,
    SubmissionType,
)
from src.services.delivery import DeliveryOrchestrator, DeliveryReport
from src.services.errors import PhoneRejectedError, PhoneVerificationUnavailable
from src.services.phone_verification import PhoneVerificationService
from src.utils.address import ParsedAddress, parse_address_components, split_full_address, validate_address

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits
COMPLETE_MESSAGE = "Your information has been received. We will contact you within 24 hours."


def generate_lead_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"lead_{int(time.time() * 1000)}_{suffix}"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def split_full_name(full_name: str) -> Tuple[str, str]:
    """First token is the first name, the rest is the last name; one token fills both."""
    tokens = full_name.split()
    if not tokens:
        return "", ""
    if len(tokens) == 1:
        return tokens[0], tokens[0]
    return tokens[0], " ".join(tokens[1:])


@dataclass
class ClientInfo:
    ip_address: str = "unknown"
    user_agent: str = "unknown"


@dataclass
class LeadSubmissionResult:
    lead: LeadRecord
    report: DeliveryReport
    message: Optional[str] = None

    @property
    def warning(self) -> Optional[str]:
        return self.report.warning


class LeadService:
    """Builds normalized lead records from validated submissions and delivers them."""

    def __init__(
        self,
        orchestrator: DeliveryOrchestrator,
        phone_verification: Optional[PhoneVerificationService] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._phone_verification = phone_verification

    def submit_partial(self, submission: PartialLeadSubmission, client: ClientInfo) -> LeadSubmissionResult:
        now = utc_now()
        record = LeadRecord(
            lead_id=submission.lead_id or generate_lead_id(),
            timestamp=now,
            last_updated=now,
            submission_type=SubmissionType.PARTIAL,
            first_name=submission.first_name,
            last_name=submission.last_name,
            email=submission.email,
            phone=submission.phone,
            address=submission.address,
            address_line1=submission.address_line1,
            city=submission.city,
            state=submission.state,
            postal_code=submission.postal_code,
            place_id=submission.place_id,
            referral_source=submission.referral_source or "website",
            consent=submission.consent,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )
        record = self._with_address_parts(record, submission.address_components)
        record = self._verify_phone(record, reject_invalid=False)
        return self._deliver(record)

    def submit_complete(self, submission: CompleteLeadSubmission, client: ClientInfo) -> LeadSubmissionResult:
        now = utc_now()
        first_name, last_name = split_full_name(submission.full_name)
        record = LeadRecord(
            lead_id=submission.lead_id or generate_lead_id(),
            timestamp=submission.timestamp or now,
            last_updated=now,
            submission_type=SubmissionType.COMPLETE,
            first_name=first_name,
            last_name=last_name,
            full_name=submission.full_name,
            email=submission.email,
            phone=submission.phone,
            address=submission.address,
            address_line1=submission.address_line1,
            city=submission.city,
            state=submission.state,
            postal_code=submission.postal_code,
            place_id=submission.place_id,
            property_condition=submission.property_condition,
            timeline=submission.timeline,
            asking_price=self._original_price(submission.asking_price),
            price=submission.price,
            is_property_listed=submission.is_property_listed,
            source=submission.source or "offer-page",
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )
        record = self._with_address_parts(record, submission.address_components)
        record = self._verify_phone(record, reject_invalid=True)
        return self._deliver(record, message=COMPLETE_MESSAGE)

    def submit_form(self, submission: FormLeadSubmission, client: ClientInfo) -> LeadSubmissionResult:
        now = utc_now()
        if submission.lead_id:
            logger.info("Upgrading partial lead %s to complete", submission.lead_id)
        record = LeadRecord(
            lead_id=submission.lead_id or generate_lead_id(),
            timestamp=submission.timestamp or now,
            last_updated=now,
            submission_type=SubmissionType.COMPLETE,
            first_name=submission.first_name,
            last_name=submission.last_name,
            full_name=f"{submission.first_name} {submission.last_name}".strip(),
            email=submission.email,
            phone=submission.phone,
            address=submission.address,
            address_line1=submission.address_line1,
            city=submission.city,
            state=submission.state,
            postal_code=submission.postal_code,
            place_id=submission.place_id,
            property_condition=submission.property_condition,
            timeline=submission.timeline,
            asking_price=self._original_price(submission.asking_price),
            price=submission.price,
            is_property_listed=submission.is_property_listed,
            comments=submission.comments,
            referral_source=submission.referral_source or "website",
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )
        record = self._with_address_parts(record, submission.address_components)
        record = self._verify_phone(record, reject_invalid=False)
        return self._deliver(record)

    @staticmethod
    def _original_price(value) -> Optional[str]:
        return None if value is None else str(value)

    def _with_address_parts(self, record: LeadRecord, components) -> LeadRecord:
        if components:
            parsed = parse_address_components(components)
        elif record.address_line1 or record.city or record.state:
            parsed = ParsedAddress(
                address_line1=record.address_line1 or "",
                city=record.city or "",
                state=record.state or "",
                postal_code=record.postal_code or "",
            )
        else:
            parsed = split_full_address(record.address)

        validation = validate_address(parsed)
        if not validation.is_valid:
            logger.warning("Lead %s address is incomplete: %s", record.lead_id, ", ".join(validation.errors))

        return record.model_copy(
            update={
                "address_line1": record.address_line1 or parsed.address_line1 or None,
                "city": record.city or parsed.city or None,
                "state": record.state or parsed.state or None,
                "postal_code": record.postal_code or parsed.postal_code or None,
            }
        )

    def _verify_phone(self, record: LeadRecord, reject_invalid: bool) -> LeadRecord:
        if self._phone_verification is None:
            return record
        try:
            result = self._phone_verification.verify(record.phone)
        except PhoneVerificationUnavailable as exc:
            # Losing a real lead is worse than accepting an unverified number.
            logger.warning("Phone verification unavailable for lead %s, using format check: %s", record.lead_id, exc)
            return record

        if not result.is_valid:
            if reject_invalid:
                raise PhoneRejectedError(result.error or "Invalid phone number")
            logger.warning("Lead %s phone flagged by verifier: %s", record.lead_id, result.error)
            return record.model_copy(update={"phone_verified": False})

        return record.model_copy(
            update={
                "phone_verified": True,
                "phone_line_type": result.line_type,
                "phone_carrier": result.carrier,
            }
        )

    def _deliver(self, record: LeadRecord, message: Optional[str] = None) -> LeadSubmissionResult:
        logger.info("Delivering %s lead %s", record.submission_type.value, record.lead_id)
        report = self._orchestrator.deliver(record)
        return LeadSubmissionResult(lead=record, report=report, message=message)
