from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central application configuration."""

    app_name: str = Field(default="Cash Offer Lead Intake")
    debug: bool = Field(default=False)
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("APP_ENV", "ENVIRONMENT", "NODE_ENV"),
    )
    log_level: str = Field(default="INFO")
    allowed_origins: List[str] = Field(
        default_factory=lambda: ["*"],
        validation_alias="ALLOWED_ORIGINS",
    )

    # Webhook automation
    webhook_url: str = Field(
        default="",
        validation_alias=AliasChoices("WEBHOOK_URL", "ZAPIER_WEBHOOK_URL"),
    )

    # Google Sheets backup
    google_service_account_key: str = Field(default="")
    google_service_account_file: str = Field(
        default="",
        validation_alias=AliasChoices("GOOGLE_SA_FILE", "GOOGLE_SERVICE_ACCOUNT_FILE"),
    )
    google_sheets_property_id: str = Field(default="")
    google_sheets_sheet_name: str = Field(default="Sheet1")

    # CRM
    crm_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("CRM_API_KEY", "GHL_API_KEY"),
    )
    crm_endpoint: str = Field(
        default="",
        validation_alias=AliasChoices("CRM_ENDPOINT", "GHL_ENDPOINT", "NEXT_PUBLIC_GHL_ENDPOINT"),
    )
    crm_location_id: str = Field(
        default="",
        validation_alias=AliasChoices("CRM_LOCATION_ID", "GHL_LOCATION_ID"),
    )
    crm_api_version: str = Field(default="2021-07-28")

    # Phone verification
    numverify_api_key: str = Field(default="")
    phone_cache_ttl_seconds: int = Field(default=24 * 60 * 60)
    phone_cache_max_entries: int = Field(default=10_000)

    # Rate limiting
    rate_limit_requests: int = Field(default=10)
    rate_limit_window_seconds: int = Field(default=60)

    # Outbound HTTP / retry
    request_timeout_seconds: float = Field(default=10.0)
    retry_max_attempts: int = Field(default=3)
    retry_base_delay_seconds: float = Field(default=1.0)
    retry_max_delay_seconds: float = Field(default=5.0)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
