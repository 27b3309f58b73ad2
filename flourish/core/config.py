"""Configuration management for flourish."""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Document store
    sqlite_db_path: str = Field(default="./data/flourish.db", description="SQLite document store file path")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="production", description="Deployment environment reported to Logfire")

    # Local calendar
    timezone: str | None = Field(
        default=None,
        description="IANA timezone used for local day boundaries (defaults to the host's local zone)",
    )

    # Nutrient timers
    nutrient_tick_seconds: float = Field(default=1.0, description="Interval between nutrient timer ticks")
    nutrient_level_step: int = Field(
        default=10, description="Amount added to water and care levels when a nutrient is applied"
    )
    default_nutrient_timer_seconds: int = Field(
        default=300, description="Effect duration used when a nutrient document has no usable timer"
    )

    # Task views
    upcoming_days_default: int = Field(default=7, description="Number of days shown in the upcoming summary")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        """Reject names the IANA database does not know."""
        if not v:
            return None
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            msg = f"Unknown timezone: {v}"
            raise ValueError(msg) from e
        return v


# Application Constants
class Constants:
    """Application-wide constants."""

    # Plant levels
    MIN_LEVEL: int = 0
    MAX_LEVEL: int = 100

    # Streaks
    STREAK_MAX_DAYS: int = 365  # Hard bound on the backward day walk

    # Plant care intervals (days)
    DEFAULT_WATERING_FREQUENCY_DAYS: int = 7
    FERTILIZING_INTERVAL_DAYS: int = 30
    REPOTTING_INTERVAL_DAYS: int = 365

    # Custom tasks
    DEFAULT_CUSTOM_TASK_POINTS: int = 10

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 500  # Large enough to cover one user's task history per query

    # Nutrient timer job ids
    NUTRIENT_TIMER_JOB_PREFIX: str = "nutrient_timer"


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
