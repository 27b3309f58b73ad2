"""Streak and completion-rate arithmetic."""

from collections.abc import Iterable
from datetime import date, datetime, timedelta, tzinfo

from flourish.core.clock import local_date
from flourish.core.config import constants


def calculate_streak(completed_at: Iterable[datetime], *, today: date, tz: tzinfo) -> int:
    """Count consecutive local days with at least one completion, walking back from today.

    A day without completions ends the walk, except today itself: an empty
    today is skipped without incrementing so an unfinished day does not break
    yesterday's streak. The walk is bounded at ``STREAK_MAX_DAYS``.

    Args:
        completed_at: Completion timestamps (any order)
        today: The local calendar date to start from
        tz: Timezone defining local calendar days

    Returns:
        Streak length in days (0 when there are no completions)
    """
    days_with_completion = {local_date(ts, tz) for ts in completed_at}
    if not days_with_completion:
        return 0

    streak = 0
    for offset in range(constants.STREAK_MAX_DAYS):
        day = today - timedelta(days=offset)
        if day in days_with_completion:
            streak += 1
        elif offset == 0:
            continue
        else:
            break

    return streak


def completion_rate(completed: int, total: int) -> int:
    """Percentage of completed tasks, rounded half up (0 when there are none).

    Rounding is exact integer arithmetic. A float ``round(100 * c / t)`` can
    land one lower on binary boundary cases such as 29/200 (14 instead of 15);
    this function returns 15 there.
    """
    if total <= 0:
        return 0
    # Exact integer half-up rounding of 100 * completed / total
    return (200 * completed + total) // (2 * total)
