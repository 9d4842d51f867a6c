from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

import requests

from src.services.errors import PhoneVerificationUnavailable
from src.utils.parsing import phone_digits

logger = logging.getLogger(__name__)

NUMVERIFY_ENDPOINT = "https://apilayer.net/api/validate"

ACCEPTABLE_LINE_TYPES = {"mobile", "fixed_line", "fixed_line_or_mobile"}
FAKE_NUMBER_PATTERNS = [
    re.compile(r"^(\d)\1{9}$"),
    re.compile(r"^123456789\d?$"),
    re.compile(r"^555555\d{4}$"),
    re.compile(r"^000\d{7}$"),
]


@dataclass
class PhoneVerificationResult:
    is_valid: bool
    phone_number: Optional[str] = None
    country_code: Optional[str] = None
    line_type: Optional[str] = None
    carrier: Optional[str] = None
    error: Optional[str] = None


@dataclass
class NumverifyClient:
    api_key: str
    country_code: str = "US"
    timeout: float = 10.0

    def verify(self, phone: str) -> PhoneVerificationResult:
        """Classify ``phone``. Raises ``PhoneVerificationUnavailable`` when no verdict could be obtained."""
        if not self.api_key:
            raise PhoneVerificationUnavailable("Phone verification not configured")

        digits = phone_digits(phone)
        params = {
            "access_key": self.api_key,
            "number": digits,
            "country_code": self.country_code,
            "format": 1,
        }
        try:
            response = requests.get(NUMVERIFY_ENDPOINT, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise PhoneVerificationUnavailable(f"Phone verification request failed: {exc}") from exc

        if not response.ok:
            raise PhoneVerificationUnavailable(
                f"Phone verification service unavailable ({response.status_code})"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise PhoneVerificationUnavailable("Phone verification returned a non-JSON body") from exc
        if not isinstance(data, dict) or "error" in data:
            raise PhoneVerificationUnavailable(f"Phone verification provider error: {data}")

        line_type = (data.get("line_type") or "").lower()
        logger.info("Phone verification: valid=%s line_type=%s", data.get("valid"), line_type or "unknown")

        if not data.get("valid"):
            return PhoneVerificationResult(is_valid=False, error="Invalid phone number")
        if any(pattern.match(digits) for pattern in FAKE_NUMBER_PATTERNS):
            return PhoneVerificationResult(is_valid=False, error="Please enter a real phone number")
        if line_type in {"voip", "toll_free"}:
            return PhoneVerificationResult(
                is_valid=False, line_type=line_type, error="Please use a personal mobile or landline number"
            )
        if line_type not in ACCEPTABLE_LINE_TYPES:
            return PhoneVerificationResult(
                is_valid=False, line_type=line_type, error="Please use a valid mobile or landline number"
            )

        return PhoneVerificationResult(
            is_valid=True,
            phone_number=data.get("international_format"),
            country_code=data.get("country_code"),
            line_type=line_type,
            carrier=data.get("carrier"),
        )
