"""
Configuration Management for Lume Finance

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
    """Remote document store (Google Sheets) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # One worksheet per collection
    transactions_sheet_name: str = Field(
        default="transactions",
        description="Name of the sheet holding transactions"
    )
    users_sheet_name: str = Field(
        default="users",
        description="Name of the sheet holding users"
    )
    categories_sheet_name: str = Field(
        default="categories",
        description="Name of the sheet holding custom categories"
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


class LocalStoreSettings(BaseSettings):
    """On-device JSON storage used in fallback mode."""

    model_config = SettingsConfigDict(
        env_prefix="LOCAL_STORE_",
        extra="ignore"
    )

    data_dir: str = Field(
        default=".lume",
        description="Directory holding one JSON file per collection"
    )

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()


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

    # Categories that always exist, whatever is persisted
    default_categories: str = Field(
        default="Moradia,Alimentação,Transporte,Saúde,Lazer,Salário,Investimentos,Outros",
        description="Comma-separated baseline category labels"
    )
    default_reserve_mode: str = Field(
        default="total",
        pattern="^(monthly|total)$",
        description="Reserve display mode used when none is chosen"
    )

    # Seed admin, created only when the user collection is empty
    seed_admin_id: str = Field(
        default="admin-seed-01",
        description="Fixed identifier of the seed admin"
    )
    seed_admin_name: str = Field(
        default="Administrator",
        description="Display name of the seed admin"
    )
    seed_admin_email: str = Field(
        default="admin@lume.local",
        description="Login email of the seed admin"
    )
    seed_admin_password: Optional[str] = Field(
        default=None,
        description="Initial password of the seed admin (random if unset)"
    )

    @field_validator('seed_admin_password')
    @classmethod
    def validate_seed_admin_password(cls, v: Optional[str]) -> Optional[str]:
        """bcrypt refuses passwords longer than 72 bytes."""
        if v is not None and len(v.encode("utf-8")) > 72:
            raise ValueError("Seed admin password must be at most 72 bytes long")
        return v

    @property
    def default_categories_list(self) -> list[str]:
        """Get baseline categories as a list."""
        return [
            name.strip()
            for name in self.default_categories.split(",")
            if name.strip()
        ]


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
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def local_store(self) -> LocalStoreSettings:
        return LocalStoreSettings()

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

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.local_store
        results["local_store"] = True
    except Exception as e:
        results["local_store"] = False
        results["local_store_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
