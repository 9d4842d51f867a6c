from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from src.schemas.lead import LeadRecord
from src.services.crm_formatter import CrmContactFormatter
from src.services.errors import CrmAuthenticationError, DeliveryFailedError
from src.services.retry import RetryPolicy

logger = logging.getLogger(__name__)

WEBHOOK = "webhook"
SPREADSHEET = "spreadsheet"
CRM = "crm"


class WebhookDestination(Protocol):
    def is_enabled(self) -> bool: ...

    def send(self, lead: LeadRecord) -> Any: ...


class SpreadsheetDestination(Protocol):
    def is_enabled(self) -> bool: ...

    def append_or_update(self, lead: LeadRecord) -> bool: ...


class CrmDestination(Protocol):
    def is_enabled(self) -> bool: ...

    def upsert_contact(self, contact: Dict[str, Any]) -> Optional[str]: ...


@dataclass
class DestinationOutcome:
    name: str
    success: bool
    attempts: int = 0
    error: Optional[str] = None
    skipped: bool = False

    def describe(self) -> str:
        if self.skipped:
            return f"{self.name}: skipped ({self.error or 'not configured'})"
        return f"{self.name}: {self.error or 'failed'}"


@dataclass
class DeliveryReport:
    outcomes: List[DestinationOutcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return any(outcome.success for outcome in self.outcomes)

    @property
    def failures(self) -> List[DestinationOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]

    @property
    def warning(self) -> Optional[str]:
        failures = self.failures
        if not failures:
            return None
        return "Lead saved, but not every destination received it: " + "; ".join(
            outcome.describe() for outcome in failures
        )


def _retry_unless_auth_failure(error: Exception) -> bool:
    return not isinstance(error, CrmAuthenticationError)


class DeliveryOrchestrator:
    """Delivers one lead to the webhook, the spreadsheet backup and the CRM.

    Every destination is attempted regardless of the others. The lead counts
    as captured when at least one of them accepted it.
    """

    def __init__(
        self,
        webhook: WebhookDestination,
        spreadsheet: SpreadsheetDestination,
        crm: CrmDestination,
        crm_formatter: CrmContactFormatter,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self._webhook = webhook
        self._spreadsheet = spreadsheet
        self._crm = crm
        self._crm_formatter = crm_formatter
        self._retry_policy = retry_policy or RetryPolicy()
        self._crm_retry_policy = self._retry_policy.with_predicate(_retry_unless_auth_failure)

    def deliver(self, lead: LeadRecord) -> DeliveryReport:
        report = DeliveryReport(
            outcomes=[
                self._deliver_webhook(lead),
                self._deliver_spreadsheet(lead),
                self._deliver_crm(lead),
            ]
        )
        for outcome in report.outcomes:
            logger.info(
                "Lead %s -> %s: success=%s attempts=%d%s",
                lead.lead_id,
                outcome.name,
                outcome.success,
                outcome.attempts,
                f" error={outcome.error}" if outcome.error else "",
            )

        if not report.success:
            details = [outcome.describe() for outcome in report.outcomes]
            logger.error("Lead %s was not captured by any destination: %s", lead.lead_id, details)
            raise DeliveryFailedError("All lead destinations failed", details)
        return report

    def _deliver_webhook(self, lead: LeadRecord) -> DestinationOutcome:
        if not self._webhook.is_enabled():
            return DestinationOutcome(name=WEBHOOK, success=False, skipped=True, error="not configured")
        result = self._retry_policy.run(lambda: self._webhook.send(lead), label="Webhook delivery")
        return DestinationOutcome(
            name=WEBHOOK,
            success=result.success,
            attempts=result.attempts,
            error=str(result.error) if result.error and not result.success else None,
        )

    def _deliver_spreadsheet(self, lead: LeadRecord) -> DestinationOutcome:
        # Backup channel: one attempt, failures are only logged.
        if not self._spreadsheet.is_enabled():
            return DestinationOutcome(name=SPREADSHEET, success=False, skipped=True, error="not configured")
        try:
            saved = bool(self._spreadsheet.append_or_update(lead))
        except Exception as exc:  # noqa: BLE001 - must not block the other destinations
            logger.error("Spreadsheet backup raised for lead %s: %s", lead.lead_id, exc)
            return DestinationOutcome(name=SPREADSHEET, success=False, attempts=1, error=str(exc))
        return DestinationOutcome(
            name=SPREADSHEET,
            success=saved,
            attempts=1,
            error=None if saved else "spreadsheet did not record the lead",
        )

    def _deliver_crm(self, lead: LeadRecord) -> DestinationOutcome:
        if not self._crm.is_enabled():
            return DestinationOutcome(name=CRM, success=False, skipped=True, error="not configured")
        try:
            contact = self._crm_formatter.format(lead)
        except Exception as exc:  # noqa: BLE001 - must not block the other destinations
            logger.error("CRM contact formatting failed for lead %s: %s", lead.lead_id, exc)
            return DestinationOutcome(name=CRM, success=False, error=f"formatting failed: {exc}")
        result = self._crm_retry_policy.run(lambda: self._crm.upsert_contact(contact), label="CRM delivery")
        return DestinationOutcome(
            name=CRM,
            success=result.success,
            attempts=result.attempts,
            error=str(result.error) if result.error and not result.success else None,
        )
