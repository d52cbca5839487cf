"""
Occurrence resolver.
Finds the first date on or after a reference date that falls on one of the
course's weekdays.
"""

from datetime import date, timedelta
from typing import Iterable

from schedcal.errors import OccurrenceResolutionError

DAYS_PER_WEEK = 7


def weekday_ordinal(day: date) -> int:
    """Weekday ordinal with Sunday = 0 (Python's date.weekday() has Monday = 0)."""
    return (day.weekday() + 1) % DAYS_PER_WEEK


def first_occurrence_on_or_after(reference_date: date, target_ordinals: Iterable[int]) -> date:
    """
    Scan forward from reference_date (inclusive) to the first matching weekday.

    Args:
        reference_date: Usually the semester start
        target_ordinals: Weekday ordinals 0..6 (Sunday = 0)

    Returns:
        The first matching date, at most 6 days after reference_date

    Raises:
        OccurrenceResolutionError: if no valid ordinal is given
    """
    targets = {o for o in target_ordinals if 0 <= o < DAYS_PER_WEEK}
    if not targets:
        raise OccurrenceResolutionError(
            "Cannot resolve a first occurrence without target weekdays",
            reason="empty_weekday_set",
        )

    candidate = reference_date
    for _ in range(DAYS_PER_WEEK):
        if weekday_ordinal(candidate) in targets:
            return candidate
        candidate += timedelta(days=1)

    # Unreachable with a non-empty target set
    raise OccurrenceResolutionError(
        f"No matching weekday within a week of {reference_date.isoformat()}",
        reason="scan_exhausted",
    )
