from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StrictBool,
    ValidationError,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from src.schemas.address import AddressComponent
from src.services.errors import LeadValidationError
from src.utils.parsing import format_phone_for_storage, parse_price, phone_digits

MIN_PHONE_DIGITS = 10


class PropertyCondition(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class Timeline(str, Enum):
    ASAP = "asap"
    DAYS_30 = "30days"
    DAYS_60 = "60days"
    DAYS_90 = "90days"
    FLEXIBLE = "flexible"


class SubmissionType(str, Enum):
    PARTIAL = "partial"
    COMPLETE = "complete"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class _SubmissionBase(_CamelModel):
    """Fields shared by every inbound form: the address block and the phone."""

    address: str = Field(..., description="Full address string as shown to the visitor")
    address_line1: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("addressLine1", "streetAddress", "address_line1"),
    )
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    place_id: Optional[str] = None
    address_components: Optional[List[AddressComponent]] = Field(
        default=None,
        description="Raw geocoder components; preferred over splitting the address string",
    )
    phone: str = Field(..., description="Phone in any punctuation; normalized on validation")
    lead_id: Optional[str] = None

    @field_validator("address")
    @classmethod
    def _address_required(cls, value: str) -> str:
        if not value:
            raise ValueError("Address is required")
        return value

    @field_validator("phone")
    @classmethod
    def _normalize_phone(cls, value: str) -> str:
        if len(phone_digits(value)) < MIN_PHONE_DIGITS:
            raise ValueError(f"Phone number must contain at least {MIN_PHONE_DIGITS} digits")
        return format_phone_for_storage(value)

    @field_validator("address_line1", "city", "state", "postal_code", "place_id", "lead_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class _PricedSubmission(_SubmissionBase):
    email: EmailStr
    property_condition: PropertyCondition
    timeline: Timeline = Field(..., validation_alias=AliasChoices("timeline", "timeframe"))
    asking_price: Optional[Union[str, int, float]] = Field(
        default=None,
        validation_alias=AliasChoices("askingPrice", "price", "asking_price"),
        description="Price exactly as typed, kept for audit",
    )
    is_property_listed: Optional[bool] = None
    timestamp: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _lowercase_email(cls, value: str) -> str:
        return value.lower()

    @computed_field  # type: ignore[misc]
    @property
    def price(self) -> Optional[float]:
        return parse_price(self.asking_price)


class PartialLeadSubmission(_SubmissionBase):
    """First funnel step: address, phone and consent."""

    consent: StrictBool
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    referral_source: Optional[str] = None
    last_updated: Optional[str] = None

    @field_validator("consent")
    @classmethod
    def _consent_given(cls, value: bool) -> bool:
        if value is not True:
            raise ValueError("Consent is required")
        return value

    @field_validator("email", mode="before")
    @classmethod
    def _empty_email_is_absent(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("email")
    @classmethod
    def _lowercase_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else value


class CompleteLeadSubmission(_PricedSubmission):
    """Single-step offer page: everything at once with a combined name."""

    full_name: str
    source: Optional[str] = None

    @field_validator("full_name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        if not value:
            raise ValueError("Name is required")
        return value


class FormLeadSubmission(_PricedSubmission):
    """Multi-step funnel submission, usually upgrading an earlier partial lead."""

    first_name: str
    last_name: str
    referral_source: Optional[str] = None
    comments: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def _name_part_required(cls, value: str) -> str:
        if not value:
            raise ValueError("Name is required")
        return value


class LeadRecord(_CamelModel):
    """Normalized lead handed to every destination."""

    lead_id: str
    timestamp: str
    last_updated: str
    submission_type: SubmissionType

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: str

    address: str
    address_line1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    place_id: Optional[str] = None

    property_condition: Optional[PropertyCondition] = None
    timeline: Optional[Timeline] = None
    asking_price: Optional[str] = None
    price: Optional[float] = None
    is_property_listed: Optional[bool] = None
    comments: Optional[str] = None

    referral_source: str = "website"
    source: Optional[str] = None
    consent: Optional[bool] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    phone_verified: Optional[bool] = None
    phone_line_type: Optional[str] = None
    phone_carrier: Optional[str] = None

    @property
    def is_partial(self) -> bool:
        return self.submission_type == SubmissionType.PARTIAL

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class LeadSubmissionResponse(_CamelModel):
    success: bool
    lead_id: str
    message: Optional[str] = None
    warning: Optional[str] = None


class ErrorResponse(_CamelModel):
    error: str
    details: Optional[Union[List[str], str]] = None
    retry_after: Optional[int] = None


SubmissionModel = TypeVar("SubmissionModel", bound=BaseModel)


def _format_error(error: Dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ())) or "body"
    message = str(error.get("msg", "Invalid value"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"{location}: {message}"


def validate_submission(model: Type[SubmissionModel], payload: Any) -> SubmissionModel:
    """Validate ``payload`` against ``model``, reporting every violated field at once."""
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise LeadValidationError([_format_error(error) for error in exc.errors()]) from exc
