"""Tests for configuration."""

import pytest
from pydantic import ValidationError

from flourish.core.config import Constants, Settings


def test_timezone_is_validated() -> None:
    """Unknown zone names are rejected when settings load."""
    with pytest.raises(ValidationError, match="Unknown timezone: Mars/Olympus"):
        Settings(timezone="Mars/Olympus")


def test_blank_timezone_means_host_zone() -> None:
    """An empty TIMEZONE falls back to the host zone."""
    assert Settings(timezone="").timezone is None


def test_settings_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment variables override defaults (case-insensitive)."""
    monkeypatch.setenv("NUTRIENT_LEVEL_STEP", "15")
    monkeypatch.setenv("TIMEZONE", "Europe/Berlin")

    settings = Settings()

    assert settings.nutrient_level_step == 15
    assert settings.timezone == "Europe/Berlin"


def test_nutrient_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    """Nutrient defaults match the app's behaviour."""
    monkeypatch.delenv("NUTRIENT_TICK_SECONDS", raising=False)
    monkeypatch.delenv("DEFAULT_NUTRIENT_TIMER_SECONDS", raising=False)

    settings = Settings()

    assert settings.nutrient_tick_seconds == 1.0
    assert settings.default_nutrient_timer_seconds == 300


def test_constants() -> None:
    """Level bounds and care intervals."""
    assert (Constants.MIN_LEVEL, Constants.MAX_LEVEL) == (0, 100)
    assert Constants.STREAK_MAX_DAYS == 365
    assert Constants.FERTILIZING_INTERVAL_DAYS == 30
    assert Constants.REPOTTING_INTERVAL_DAYS == 365
