"""
Configuration and settings for the InvoiceDesk service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings, validated once at startup."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Sessions
    session_secret: str = Field(..., min_length=1)
    session_ttl_seconds: int = Field(default=24 * 60 * 60, gt=0)
    session_cookie_name: str = Field(default="invoicedesk_session")
    cookie_secure: bool = Field(default=False)

    # Google Sheets (service account)
    google_service_account_file: Optional[str] = Field(default=None)
    spreadsheet_id: Optional[str] = Field(default=None)
    users_range: str = Field(default="Users!A:C")
    invoices_range: str = Field(default="Invoices!A:K")

    # Invoice storage
    invoice_backend: Literal["database", "sheet"] = Field(default="database")
    database_url: Optional[str] = Field(default=None)

    # Session store (Redis); in-process store when unset
    redis_url: Optional[str] = Field(default=None)
    redis_session_prefix: str = Field(default="invoicedesk:session:")

    outbound_timeout_seconds: float = Field(default=10.0, gt=0)

    # HTTP surface
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    static_dir: str = Field(default="public")
    log_level: str = Field(default="INFO")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "INVOICEDESK_USE_IN_MEMORY_BACKENDS", "use_in_memory_backends"
        ),
    )

    @model_validator(mode="after")
    def _check_required_backends(self) -> "Settings":
        if self.use_in_memory_backends:
            return self
        missing = []
        if not self.google_service_account_file:
            missing.append("GOOGLE_SERVICE_ACCOUNT_FILE")
        if not self.spreadsheet_id:
            missing.append("SPREADSHEET_ID")
        if self.invoice_backend == "database" and not self.database_url:
            missing.append("DATABASE_URL")
        if missing:
            raise ValueError(
                "Missing required configuration: "
                + ", ".join(missing)
                + " (set INVOICEDESK_USE_IN_MEMORY_BACKENDS=true for local development)"
            )
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
