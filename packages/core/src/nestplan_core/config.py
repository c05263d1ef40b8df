"""Configuration system for the Nestplan projection engine.

This module provides Pydantic Settings-based configuration with environment
variable support and sensible defaults for the projection driver and the
payroll tax solver.

Usage:
    from nestplan_core.config import NestplanConfig

    # Load from environment variables and .env file
    config = NestplanConfig()

    # Access solver settings
    print(config.solver.max_iterations)
    print(config.solver.tolerance)

    # Access projection settings
    print(config.projection.death_age)
"""

from decimal import Decimal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TaxSolverSettings(BaseSettings):
    """Payroll tax solver settings.

    Controls the fixed-point iteration that inverts net pay into gross pay.
    Supports environment variables with the prefix NESTPLAN_SOLVER_.

    Environment Variables:
        NESTPLAN_SOLVER_INITIAL_MULTIPLIER: First gross estimate as a multiple of net pay
        NESTPLAN_SOLVER_TOLERANCE: Accepted absolute difference from the target net pay
        NESTPLAN_SOLVER_MAX_ITERATIONS: Hard iteration cap
        NESTPLAN_SOLVER_STEP_RATIO: Share of the residual applied per iteration
    """

    model_config = SettingsConfigDict(
        env_prefix="NESTPLAN_SOLVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    initial_multiplier: Decimal = Field(
        default=Decimal("1.3"),
        gt=1,
        description="Initial gross estimate as a multiple of the net target",
    )
    tolerance: Decimal = Field(
        default=Decimal("1"),
        gt=0,
        description="Absolute net-pay tolerance in currency units",
    )
    max_iterations: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Maximum number of solver iterations",
    )
    step_ratio: Decimal = Field(
        default=Decimal("0.5"),
        gt=0,
        le=1,
        description="Fraction of the residual added to the estimate each step",
    )


class ProjectionSettings(BaseSettings):
    """Year projection settings.

    Environment Variables:
        NESTPLAN_PROJECTION_DEATH_AGE: Age at which the projection ends
        NESTPLAN_PROJECTION_BALANCE_TOLERANCE: Balances below this are treated as zero
    """

    model_config = SettingsConfigDict(
        env_prefix="NESTPLAN_PROJECTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    death_age: int = Field(
        default=90,
        gt=0,
        le=130,
        description="Projection ends in the year the household head turns this age minus one",
    )
    balance_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Balances with an absolute value below this are omitted from snapshots",
    )


class NestplanConfig(BaseSettings):
    """Root configuration for the Nestplan engine.

    Environment Variables:
        NESTPLAN_ENV: Environment name (development, staging, production, test)
        NESTPLAN_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)

    Example:
        # Load all configuration from environment
        config = NestplanConfig()

        # Override specific settings
        config = NestplanConfig(
            solver=TaxSolverSettings(max_iterations=500),
            projection=ProjectionSettings(death_age=95),
        )
    """

    model_config = SettingsConfigDict(
        env_prefix="NESTPLAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: str = Field(
        default="development",
        description="Environment name (development, staging, production, test)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    solver: TaxSolverSettings = Field(default_factory=TaxSolverSettings)
    projection: ProjectionSettings = Field(default_factory=ProjectionSettings)

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment name."""
        valid_envs = {"development", "staging", "production", "test"}
        v_lower = v.lower().strip()
        if v_lower not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper().strip()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {valid_levels}")
        return v_upper

    @property
    def is_debug(self) -> bool:
        """Check if debug logging is enabled."""
        return self.log_level == "DEBUG"
