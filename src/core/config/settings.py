# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

Settings are loaded from environment variables with sensible defaults.
The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.closure.passing_threshold
    Decimal('10')
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CouncilPointsMode = Literal["closing_term", "all_terms"]


class DatabaseSettings(BaseSettings):
    """Academic records database configuration.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        name: Database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
    """

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        extra="ignore",
    )

    user: str = "records"
    password: SecretStr = SecretStr("records_password")
    host: str = "localhost"
    port: int = 5432
    name: str = "academic_records"
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.name}"

    @property
    def sync_url(self) -> str:
        """Build the sync database URL for migrations."""
        pwd = self.password.get_secret_value()
        return f"postgresql://{self.user}:{pwd}@{self.host}:{self.port}/{self.name}"


class ClosureSettings(BaseSettings):
    """Period closure engine configuration.

    Attributes:
        passing_threshold: Minimum final score for a subject to pass, on the
            20-point scale. The ``min_approval_grade`` row of the settings
            table overrides it when present.
        default_min_average: Minimum average used when seeding transition
            rules that do not declare one.
        council_points_mode: Which council point rows count toward the final
            score. ``closing_term`` takes only the last term's decision,
            ``all_terms`` sums every term.
        transaction_timeout_seconds: Upper bound for the commit phase of a
            closure. Exceeding it rolls the whole closure back.
        transition_rules_file: Optional YAML file used to seed transition
            rules.
    """

    model_config = SettingsConfigDict(
        env_prefix="CLOSURE_",
        extra="ignore",
    )

    passing_threshold: Decimal = Field(default=Decimal("10"), ge=0, le=20)
    default_min_average: Decimal = Field(default=Decimal("10"), ge=0, le=20)
    council_points_mode: CouncilPointsMode = "closing_term"
    transaction_timeout_seconds: float = Field(default=120.0, gt=0)
    transition_rules_file: Path | None = None


class Settings(BaseSettings):
    """Main application settings aggregating all configuration.

    Attributes:
        environment: Deployment environment.
        debug: Enables SQL echo and console logging.
        log_level: Logging level.
        database: Database connection settings.
        closure: Period closure engine settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "test", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Subsettings - loaded with their own env prefixes
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    closure: ClosureSettings = Field(default_factory=ClosureSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.database.password.get_secret_value() == "records_password":
                raise ValueError(
                    "Database password must be changed from default in production. "
                    "Set DATABASE_PASSWORD environment variable."
                )
            if self.debug:
                raise ValueError("Debug mode cannot be enabled in production.")
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
