from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

try:
    from google.oauth2 import service_account
    from googleapiclient.discovery import build
except ImportError:  # pragma: no cover
    service_account = None
    build = None

from src.schemas.lead import LeadRecord

logger = logging.getLogger(__name__)

SHEET_HEADERS = [
    "Timestamp",
    "Lead ID",
    "First Name",
    "Last Name",
    "Email",
    "Phone",
    "Address",
    "Property Condition",
    "Timeframe",
    "Price",
    "Comments",
    "Referral Source",
    "Street Address",
    "City",
    "State",
    "Postal Code",
    "Is Listed",
    "Place ID",
]
LEAD_ID_COLUMN = 1


@dataclass
class SheetsConfig:
    spreadsheet_id: str
    service_account_info: Optional[Dict[str, Any]] = None
    service_account_file: str = ""
    sheet_name: str = "Sheet1"
    scopes: tuple[str, ...] = ("https://www.googleapis.com/auth/spreadsheets",)

    @property
    def enabled(self) -> bool:
        return bool(self.spreadsheet_id and (self.service_account_info or self.service_account_file))

    @property
    def data_range(self) -> str:
        return f"{self.sheet_name}!A:R"


@dataclass
class SheetsClient:
    """Backup copy of every lead in a Google Sheet, one row per lead id."""

    config: SheetsConfig
    _credentials: Any = field(default=None, init=False, repr=False)
    _credentials_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def is_enabled(self) -> bool:
        return self.config.enabled

    def _service(self):
        # One service per call: the discovery client's HTTP transport is not thread-safe.
        if not service_account or not build:
            raise RuntimeError("google-api-python-client is required for Google Sheets access")
        with self._credentials_lock:
            if self._credentials is None:
                if self.config.service_account_info:
                    self._credentials = service_account.Credentials.from_service_account_info(
                        self.config.service_account_info, scopes=self.config.scopes
                    )
                else:
                    self._credentials = service_account.Credentials.from_service_account_file(
                        self.config.service_account_file, scopes=self.config.scopes
                    )
        return build("sheets", "v4", credentials=self._credentials, cache_discovery=False)

    def build_row(self, lead: LeadRecord, existing: Optional[List[str]] = None) -> List[str]:
        existing = list(existing or [])
        existing += [""] * (len(SHEET_HEADERS) - len(existing))
        price = lead.asking_price
        if lead.price is not None:
            price = int(lead.price) if float(lead.price).is_integer() else lead.price
        listed = None
        if lead.is_property_listed is not None:
            listed = "Yes" if lead.is_property_listed else "No"

        incoming = [
            existing[0] or datetime.now(timezone.utc).isoformat(),
            lead.lead_id,
            lead.first_name,
            lead.last_name,
            lead.email,
            lead.phone,
            lead.address,
            lead.property_condition.value if lead.property_condition else None,
            lead.timeline.value if lead.timeline else None,
            price,
            lead.comments,
            lead.referral_source,
            lead.address_line1,
            lead.city,
            lead.state,
            lead.postal_code,
            listed,
            lead.place_id,
        ]
        row = []
        for index, value in enumerate(incoming):
            if value is None or value == "":
                row.append(existing[index] or ("No" if index == 16 else ""))
            else:
                row.append(str(value) if not isinstance(value, str) else value)
        return row

    def append_or_update(self, lead: LeadRecord) -> bool:
        """Update the row carrying ``lead.lead_id`` or append a new one. Returns success."""
        if not self.is_enabled():
            logger.info("Google Sheets backup not configured; skipping lead %s", lead.lead_id)
            return False

        try:
            values = self._service().spreadsheets().values()
            rows = values.get(
                spreadsheetId=self.config.spreadsheet_id, range=self.config.data_range
            ).execute().get("values", [])
            if not rows:
                self._write_headers(values)

            row_index = self._find_row(rows, lead.lead_id)
            if row_index is None:
                values.append(
                    spreadsheetId=self.config.spreadsheet_id,
                    range=self.config.data_range,
                    valueInputOption="USER_ENTERED",
                    body={"values": [self.build_row(lead)]},
                ).execute()
                logger.info("Appended lead %s to Google Sheet", lead.lead_id)
            else:
                sheet_row = row_index + 1
                values.update(
                    spreadsheetId=self.config.spreadsheet_id,
                    range=f"{self.config.sheet_name}!A{sheet_row}:R{sheet_row}",
                    valueInputOption="USER_ENTERED",
                    body={"values": [self.build_row(lead, rows[row_index])]},
                ).execute()
                logger.info("Updated lead %s in Google Sheet row %d", lead.lead_id, sheet_row)
            return True
        except Exception as exc:  # noqa: BLE001 - backup channel only logs
            logger.error("Google Sheets backup failed for lead %s: %s", lead.lead_id, exc)
            return False

    def _write_headers(self, values) -> None:
        values.update(
            spreadsheetId=self.config.spreadsheet_id,
            range=f"{self.config.sheet_name}!A1:R1",
            valueInputOption="USER_ENTERED",
            body={"values": [SHEET_HEADERS]},
        ).execute()
        logger.info("Wrote header row to empty Google Sheet")

    @staticmethod
    def _find_row(rows: List[List[str]], lead_id: str) -> Optional[int]:
        for index, row in enumerate(rows[1:], start=1):
            if len(row) > LEAD_ID_COLUMN and row[LEAD_ID_COLUMN] == lead_id:
                return index
        return None
