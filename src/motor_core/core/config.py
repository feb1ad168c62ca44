# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Configuration management using Pydantic Settings."""

from decimal import Decimal

from beartype import beartype
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with immutable configuration."""

    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        frozen=True,  # Immutable settings
        validate_default=True,
        extra="forbid",
    )

    # Database
    database_url: str = Field(
        default="postgresql://localhost:5432/motor_core",
        description="PostgreSQL connection URL",
        min_length=1,
    )
    database_pool_min: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Minimum database pool size",
    )
    database_pool_max: int = Field(
        default=20,
        ge=5,
        le=100,
        description="Maximum database pool size",
    )
    database_command_timeout: float = Field(
        default=30.0,
        ge=5.0,
        le=300.0,
        description="Query execution timeout in seconds",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
        min_length=1,
    )
    redis_ttl_seconds: int = Field(
        default=3600,
        ge=60,
        le=86400,
        description="Default Redis TTL in seconds",
    )

    api_env: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Deployment environment",
    )

    # Quoting
    quote_validity_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Days a generated quote stays valid",
    )
    motor_product_code: str = Field(
        default="MOTOR",
        min_length=1,
        description="Product code used for policy cost bracket lookups",
    )

    # Rating defaults applied when a lookup has no match
    default_rating_factor_percent: Decimal = Field(
        default=Decimal("2.50"),
        gt=Decimal("0"),
        description="Rate applied when no horsepower band matches",
    )
    default_short_term_coefficient: Decimal = Field(
        default=Decimal("1.0"),
        gt=Decimal("0"),
        description="Coefficient applied when the duration has no row",
    )
    default_policy_cost_amount: Decimal = Field(
        default=Decimal("1000"),
        ge=Decimal("0"),
        description="Policy cost applied when no bracket matches",
    )

    # Endorsements
    endorsement_coverage_placeholder: Decimal = Field(
        default=Decimal("5000"),
        ge=Decimal("0"),
        description="Flat premium change for add/remove coverage endorsements",
    )
    endorsement_vehicle_value_rate: Decimal = Field(
        default=Decimal("0.025"),
        ge=Decimal("0"),
        description="Rate applied to a vehicle value change",
    )
    endorsement_rerating: bool = Field(
        default=False,
        description="Re-run the rating engine for endorsements instead of flat rules",
    )

    # Workflow
    permissive_transitions: bool = Field(
        default=False,
        description="Allow unguarded accept/reject/cancel/endorse transitions",
    )

    # Performance
    slow_operation_threshold_ms: int = Field(
        default=2000,
        ge=1,
        description="Operations slower than this are logged as warnings",
    )

    @field_validator("database_pool_max")
    @classmethod
    def validate_pool_sizes(cls: type["Settings"], v: int, info: ValidationInfo) -> int:
        """Ensure pool max is greater than pool min."""
        if "database_pool_min" in info.data:
            min_size = info.data["database_pool_min"]
            if v < min_size:
                raise ValueError(
                    f"database_pool_max ({v}) must be >= database_pool_min ({min_size})"
                )
        return v

    @property
    @beartype
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.api_env == "production"


_settings: Settings | None = None


@beartype
def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


@beartype
def clear_settings_cache() -> None:
    """Clear settings cache (for testing)."""
    global _settings
    _settings = None
