"""Tests for streak and completion-rate arithmetic."""

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from flourish.modules.tasks.analytics import calculate_streak, completion_rate


TZ = ZoneInfo("America/New_York")
TODAY = date(2026, 6, 17)


def _on(days_ago: int, hour: int = 9) -> datetime:
    day = TODAY - timedelta(days=days_ago)
    return datetime(day.year, day.month, day.day, hour, 0, tzinfo=TZ)


@pytest.mark.unit
class TestCalculateStreak:
    """Tests for calculate_streak."""

    def test_no_completions(self):
        assert calculate_streak([], today=TODAY, tz=TZ) == 0

    def test_today_and_two_previous_days(self):
        assert calculate_streak([_on(0), _on(1), _on(2)], today=TODAY, tz=TZ) == 3

    def test_empty_today_does_not_break_streak(self):
        assert calculate_streak([_on(1), _on(2)], today=TODAY, tz=TZ) == 2

    def test_gap_yesterday_ends_streak(self):
        assert calculate_streak([_on(2)], today=TODAY, tz=TZ) == 0

    def test_gap_after_today(self):
        assert calculate_streak([_on(0), _on(2), _on(3)], today=TODAY, tz=TZ) == 1

    def test_multiple_completions_on_one_day_count_once(self):
        assert calculate_streak([_on(0, 8), _on(0, 20), _on(1)], today=TODAY, tz=TZ) == 2

    def test_order_does_not_matter(self):
        assert calculate_streak([_on(2), _on(0), _on(1)], today=TODAY, tz=TZ) == 3

    def test_days_are_local_not_utc(self):
        # 01:30 UTC on June 17 is still June 16 in New York
        late_yesterday = datetime(2026, 6, 17, 1, 30, tzinfo=UTC)

        assert calculate_streak([late_yesterday], today=TODAY, tz=TZ) == 1
        assert calculate_streak([late_yesterday], today=TODAY, tz=UTC) == 1
        assert calculate_streak([late_yesterday, _on(0)], today=TODAY, tz=TZ) == 2

    def test_streak_is_bounded(self):
        completions = [_on(offset) for offset in range(400)]

        assert calculate_streak(completions, today=TODAY, tz=TZ) == 365


@pytest.mark.unit
class TestCompletionRate:
    """Tests for completion_rate."""

    @pytest.mark.parametrize(
        ("completed", "total", "expected"),
        [
            (0, 0, 0),
            (0, 5, 0),
            (1, 3, 33),
            (2, 3, 67),
            (1, 2, 50),
            (1, 8, 13),
            (3, 8, 38),
            (5, 5, 100),
            (29, 200, 15),
        ],
    )
    def test_rounding(self, completed, total, expected):
        assert completion_rate(completed, total) == expected
