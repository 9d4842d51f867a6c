from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Depends

from src.adapters.crm_client import CrmClient, CrmConfig
from src.adapters.phone_verifier import NumverifyClient
from src.adapters.sheets_client import SheetsClient, SheetsConfig
from src.adapters.webhook_client import WebhookClient, WebhookConfig
from src.app.config import Settings, get_settings
from src.services.crm_formatter import CrmContactFormatter, PlaceholderIdentityStrategy
from src.services.delivery import DeliveryOrchestrator
from src.services.lead import LeadService
from src.services.phone_verification import PhoneVerificationService, VerificationCache
from src.services.rate_limit import FixedWindowRateLimiter, RateLimiter
from src.services.retry import RetryPolicy

logger = logging.getLogger(__name__)


def _service_account_info(raw: str) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass
    try:
        return json.loads(raw.replace("\\n", "\n"))
    except json.JSONDecodeError:
        logger.error("GOOGLE_SERVICE_ACCOUNT_KEY is not valid JSON; spreadsheet backup disabled")
        return None


@lru_cache(maxsize=1)
def get_webhook_client() -> WebhookClient:
    settings = get_settings()
    return WebhookClient(WebhookConfig(url=settings.webhook_url, timeout=settings.request_timeout_seconds))


@lru_cache(maxsize=1)
def get_sheets_client() -> SheetsClient:
    settings = get_settings()
    return SheetsClient(
        SheetsConfig(
            spreadsheet_id=settings.google_sheets_property_id,
            service_account_info=_service_account_info(settings.google_service_account_key),
            service_account_file=settings.google_service_account_file,
            sheet_name=settings.google_sheets_sheet_name,
        )
    )


@lru_cache(maxsize=1)
def get_crm_client() -> CrmClient:
    settings = get_settings()
    return CrmClient(
        CrmConfig(
            endpoint=settings.crm_endpoint,
            api_key=settings.crm_api_key,
            location_id=settings.crm_location_id,
            api_version=settings.crm_api_version,
            timeout=settings.request_timeout_seconds,
        )
    )


@lru_cache(maxsize=1)
def get_phone_verification() -> Optional[PhoneVerificationService]:
    settings = get_settings()
    if not settings.numverify_api_key:
        logger.warning("NUMVERIFY_API_KEY not configured; phone numbers get format checks only")
        return None
    return PhoneVerificationService(
        NumverifyClient(api_key=settings.numverify_api_key, timeout=settings.request_timeout_seconds),
        cache=VerificationCache(
            ttl_seconds=settings.phone_cache_ttl_seconds,
            max_entries=settings.phone_cache_max_entries,
        ),
    )


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    settings = get_settings()
    return FixedWindowRateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )


def get_retry_policy(settings: Settings = Depends(get_settings)) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.retry_max_attempts,
        base_delay=settings.retry_base_delay_seconds,
        max_delay=settings.retry_max_delay_seconds,
    )


def get_delivery_orchestrator(
    webhook: WebhookClient = Depends(get_webhook_client),
    sheets: SheetsClient = Depends(get_sheets_client),
    crm: CrmClient = Depends(get_crm_client),
    retry_policy: RetryPolicy = Depends(get_retry_policy),
) -> DeliveryOrchestrator:
    return DeliveryOrchestrator(
        webhook=webhook,
        spreadsheet=sheets,
        crm=crm,
        crm_formatter=CrmContactFormatter(identity_strategy=PlaceholderIdentityStrategy()),
        retry_policy=retry_policy,
    )


def get_lead_service(
    orchestrator: DeliveryOrchestrator = Depends(get_delivery_orchestrator),
    phone_verification: Optional[PhoneVerificationService] = Depends(get_phone_verification),
) -> LeadService:
    return LeadService(orchestrator=orchestrator, phone_verification=phone_verification)
