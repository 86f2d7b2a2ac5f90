"""
Configuration Management for Budget Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Storage locations, the recurring-bill policy and credential hashing
parameters are all visible in one place and validated at startup.

Retention (14 months), the burn window (90 days) and the tax reserve
rate (30%) are NOT configurable. They live next to the code that uses them.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.models.ledger import RecurringPolicy


class StorageSettings(BaseSettings):
    """Where the ledger document and the audit trail are kept."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_file: str = Field(
        default="data.json",
        description="Path to the JSON document holding accounts and sessions"
    )
    audit_log_file: str = Field(
        default="audit.jsonl",
        description="Path to the append-only audit log (JSON lines)"
    )
    write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a failed document write is attempted"
    )


class LedgerSettings(BaseSettings):
    """Behaviour of the ledger engines."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    recurring_policy: RecurringPolicy = Field(
        default=RecurringPolicy.AUTO_POST,
        description="What a due recurring bill does: auto_post or track_only"
    )
    recent_window_days: int = Field(
        default=14,
        ge=1,
        le=366,
        description="Age limit for the dashboard's recent entries lists"
    )
    split_recurring_categories: bool = Field(
        default=False,
        description="Group recurring-sourced expenses under '<category> (Recurring)'"
    )


class AuthSettings(BaseSettings):
    """Account credential and session configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    pbkdf2_iterations: int = Field(
        default=100_000,
        ge=1_000,
        description="PBKDF2-HMAC-SHA512 iteration count"
    )
    hash_bytes: int = Field(
        default=64,
        ge=16,
        le=128,
        description="Length of the derived key in bytes"
    )
    min_password_length: int = Field(default=6, ge=1)
    max_password_length: int = Field(default=128, ge=1)

    @field_validator('max_password_length')
    @classmethod
    def validate_password_bounds(cls, v: int, info) -> int:
        """Maximum length may not be below the minimum."""
        minimum = info.data.get("min_password_length")
        if minimum is not None and v < minimum:
            raise ValueError("max_password_length must be >= min_password_length")
        return v


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
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level emitted by the structured logger"
    )
    currency_symbol: str = Field(
        default="$",
        max_length=4,
        description="Symbol shown in front of amounts in reports and the UI"
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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    "<setting_name>_error" entry for every section that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "ledger", "auth", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
