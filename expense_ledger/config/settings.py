"""
Configuration Management for Expense Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet holding the ledger"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class LedgerSettings(BaseSettings):
    """
    Ledger layout and report formatting.

    The sheet layout itself (columns, sentinel labels) is fixed in
    expense_ledger.ledger.layout because existing spreadsheets depend on it.
    Only the knobs that are safe to change live here.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    helper_sheet_name: str = Field(
        default="Chart_Data",
        description="Hidden sheet holding chart-ready tables"
    )
    dashboard_sheet_name: str = Field(
        default="Dashboard",
        description="Sheet holding the yearly overview"
    )
    currency_symbol: str = Field(
        default="$",
        max_length=5,
        description="Symbol prefixed to amounts in reports"
    )
    thousands_separator: str = Field(
        default=".",
        max_length=1,
        description="Thousands separator used in reports"
    )
    partition_rows: int = Field(
        default=1000,
        ge=50,
        description="Initial row capacity of a new month sheet"
    )
    partition_columns: int = Field(
        default=12,
        ge=10,
        description="Initial column capacity of a new month sheet"
    )


class EmailSettings(BaseSettings):
    """SMTP configuration for e-mailed reports."""

    model_config = SettingsConfigDict(
        env_prefix="SMTP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    host: str = Field(
        ...,
        description="SMTP server host"
    )
    port: int = Field(
        default=587,
        ge=1,
        le=65535,
        description="SMTP server port"
    )
    username: Optional[str] = Field(
        default=None,
        description="SMTP login user"
    )
    password: Optional[str] = Field(
        default=None,
        description="SMTP login password"
    )
    sender: str = Field(
        ...,
        description="From address used for reports"
    )
    use_tls: bool = Field(
        default=True,
        description="Upgrade the connection with STARTTLS"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Socket timeout for the SMTP connection"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    # Submission limits
    max_batch_size: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Maximum number of purchases accepted in one submission"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def email(self) -> EmailSettings:
        return EmailSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus "<name>_error"
    entries holding the failure message. Used by the settings page.
    """
    results = {}

    settings = get_settings()

    for name in ("google_sheets", "ledger", "email", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
