"""Planning engine configuration management using Pydantic Settings."""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from budget_planner.models.pay_cycle import PAY_CYCLES


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")

    # Logging Configuration
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Pay cycle used when a caller has not resolved one
    default_pay_cycle: str = Field(default="fortnightly", alias="DEFAULT_PAY_CYCLE")

    # Allocation policy
    funded_epsilon: float = Field(default=0.01, ge=0, alias="FUNDED_EPSILON")

    # Readiness policy
    ready_ratio: float = Field(default=0.8, ge=0, le=1, alias="READINESS_READY_RATIO")
    catch_up_threshold: float = Field(
        default=10.0, ge=0, alias="READINESS_CATCH_UP_THRESHOLD"
    )

    # Debt policy
    default_minimum_percent: float = Field(
        default=2.0, ge=0, le=100, alias="DEBT_DEFAULT_MINIMUM_PERCENT"
    )
    interest_window_days: int = Field(
        default=30, ge=1, le=366, alias="DEBT_INTEREST_WINDOW_DAYS"
    )

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v):
        """Validate application environment."""
        allowed_envs = {"development", "testing", "production"}
        if v not in allowed_envs:
            raise ValueError(f"APP_ENV must be one of {allowed_envs}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of {allowed_levels}")
        return v.upper()

    @field_validator("default_pay_cycle")
    @classmethod
    def validate_default_pay_cycle(cls, v):
        """Validate default pay cycle."""
        if v not in PAY_CYCLES:
            raise ValueError(f"DEFAULT_PAY_CYCLE must be one of {set(PAY_CYCLES)}")
        return v


def get_settings(env_file: Optional[str] = None) -> Settings:
    """Get settings instance."""
    if env_file is not None:
        return Settings(_env_file=env_file)
    return Settings()


# Global settings instance - created on first use
_settings: Optional[Settings] = None


def get_global_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings


def reset_global_settings() -> None:
    """Reset global settings instance (useful for testing)."""
    global _settings
    _settings = None
