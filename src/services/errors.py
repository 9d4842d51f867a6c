from __future__ import annotations

from typing import List, Optional


class LeadPipelineError(Exception):
    """Base for errors that map directly onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str, details: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class InvalidPayloadError(LeadPipelineError):
    status_code = 400


class LeadValidationError(LeadPipelineError):
    status_code = 400

    def __init__(self, details: List[str]) -> None:
        super().__init__("Validation failed", details)


class PhoneRejectedError(LeadPipelineError):
    status_code = 400


class RateLimitExceededError(LeadPipelineError):
    status_code = 429

    def __init__(self, retry_after: Optional[int]) -> None:
        super().__init__("Too many requests")
        self.retry_after = retry_after


class DeliveryFailedError(LeadPipelineError):
    status_code = 500


class DestinationError(Exception):
    """Raised by a destination client when a single delivery attempt fails."""


class CrmError(DestinationError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CrmAuthenticationError(CrmError):
    pass


class DuplicateContactError(CrmError):
    def __init__(self, message: str, contact_id: Optional[str], status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code)
        self.contact_id = contact_id


class PhoneVerificationUnavailable(Exception):
    """The verification provider could not classify the number (outage, quota, misconfiguration)."""
