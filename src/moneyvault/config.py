"""Centralized configuration management for MoneyVault.

This module provides a Pydantic Settings-based configuration system that
consolidates all application settings with environment variable integration,
type validation, and clear error handling.
"""

import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, DotEnvSettingsSource, SettingsConfigDict

_PROFILE_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


def validate_profile_name(profile: str) -> str:
    """Ensure a profile name is safe for use in file names and keyring services.

    Raises:
        ValueError: If the profile name is empty or contains invalid characters
    """
    if not profile:
        raise ValueError("Profile name cannot be empty")

    if not _PROFILE_PATTERN.match(profile):
        raise ValueError(
            f"Invalid profile: {profile}. "
            "Profile name must contain only alphanumeric characters, "
            "dashes, and underscores"
        )
    return profile


class DatabaseConfig(BaseModel):
    """Ledger database configuration settings."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(
        default=Path("data/ledger/moneyvault.duckdb"),
        description="Path to the DuckDB ledger file",
    )
    create_dirs: bool = Field(
        default=True, description="Automatically create database directories"
    )

    @field_validator("path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Ensure database path has correct extension."""
        if not str(v).endswith((".db", ".duckdb")):
            raise ValueError("Database path must end with .db or .duckdb")
        return v


class VaultConfig(BaseModel):
    """Secret store configuration for the master key."""

    model_config = ConfigDict(frozen=True)

    service_name: str = Field(
        default="moneyvault", description="Keyring service name (profile appended)"
    )
    key_name: str = Field(
        default="db_master_key", description="Keyring entry holding the master key"
    )


class BackupConfig(BaseModel):
    """Encrypted backup configuration."""

    model_config = ConfigDict(frozen=True)

    backup_path: Path = Field(
        default=Path("data/backups"), description="Directory for backup bundles"
    )
    platform: str | None = Field(
        default=None, description="Platform tag override (default: OS name)"
    )


class InterchangeConfig(BaseModel):
    """CSV import/export configuration."""

    model_config = ConfigDict(frozen=True)

    max_field_length: int = Field(
        default=500, ge=1, le=10_000, description="Maximum length of a CSV field"
    )


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_to_file: bool = Field(default=True, description="Enable file logging")
    log_file_path: Path = Field(
        default=Path("logs/moneyvault.log"), description="Path to log file"
    )
    max_file_size_mb: int = Field(
        default=50, ge=1, le=1000, description="Maximum log file size in MB"
    )
    backup_count: int = Field(
        default=5, ge=1, le=50, description="Number of log file backups to keep"
    )


class MoneyVaultSettings(BaseSettings):
    """Main application settings with environment variable integration.

    Environment variables are loaded with the MONEYVAULT_ prefix.
    For nested configs, use double underscores: MONEYVAULT_DATABASE__PATH

    Profile Support:
    - Loads from .env.{profile} files (e.g., .env.alice, .env.household)
    - Falls back to .env
    - Each profile gets its own keyring service, so master keys never overlap
    """

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    vault: VaultConfig = Field(default_factory=VaultConfig)
    backup: BackupConfig = Field(default_factory=BackupConfig)
    interchange: InterchangeConfig = Field(default_factory=InterchangeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    debug: bool = Field(default=False, description="Enable debug mode")
    profile: str = Field(
        default="default",
        description="User profile name (e.g., alice, bob, household)",
    )

    @field_validator("profile")
    @classmethod
    def validate_profile(cls, v: str) -> str:
        return validate_profile_name(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Load the profile-specific env file instead of the default one."""
        init_dict = init_settings.init_kwargs if init_settings else {}
        profile = init_dict.get("profile", "default")  # type: ignore[reportUnknownMemberType]

        profile_env_file = Path(f".env.{profile}")
        env_file = str(profile_env_file) if profile_env_file.exists() else ".env"

        custom_dotenv = DotEnvSettingsSource(
            settings_cls,
            env_file=env_file,
            env_file_encoding="utf-8",
        )

        # Later sources are lower priority
        return (
            init_settings,
            env_settings,
            custom_dotenv,
            file_secret_settings,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MONEYVAULT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @property
    def keyring_service(self) -> str:
        """Keyring service name scoped to this profile."""
        return f"{self.vault.service_name}-{self.profile}"

    def create_directories(self) -> None:
        """Create necessary directories for the application."""
        directories = [
            self.database.path.parent,
            self.backup.backup_path,
            self.logging.log_file_path.parent,
        ]

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)


# Settings instances - lazy loaded per profile
_settings_cache: dict[str, MoneyVaultSettings] = {}
_current_profile: str = "default"


def get_settings(profile: str | None = None) -> MoneyVaultSettings:
    """Get the settings instance for the specified user profile.

    Settings are loaded once per profile and cached.

    Args:
        profile: User profile name. Defaults to the current profile.

    Returns:
        MoneyVaultSettings: The configuration instance for the profile

    Raises:
        ValueError: If configuration is missing or invalid
    """
    if profile is None:
        profile = _current_profile

    if profile in _settings_cache:
        return _settings_cache[profile]

    try:
        settings = MoneyVaultSettings(profile=profile)
    except Exception as e:
        raise ValueError(f"Configuration error for profile '{profile}': {e}") from e

    if settings.database.create_dirs:
        settings.create_directories()

    _settings_cache[profile] = settings
    return settings


def set_current_profile(profile: str) -> None:
    """Set the current active user profile.

    Raises:
        ValueError: If profile name contains invalid characters
    """
    global _current_profile  # noqa: PLW0603 - process-wide active profile

    _current_profile = validate_profile_name(profile)


def get_current_profile() -> str:
    """Get the current active user profile."""
    return _current_profile


def clear_settings_cache() -> None:
    """Drop all cached settings so the next access re-reads the environment."""
    _settings_cache.clear()


def get_database_path() -> Path:
    """Get the configured ledger database path for the current profile."""
    return get_settings().database.path


def get_backup_path() -> Path:
    """Get the configured backup directory for the current profile."""
    return get_settings().backup.backup_path
