"""
Recurrence compiler.
Turns a course's weekday set, meeting times and the semester end into a weekly
recurrence rule plus the concrete first-occurrence timestamps.

Rule grammar (Google Calendar / RFC 5545 subset):
    FREQ=WEEKLY;BYDAY=MO,WE;UNTIL=20240501T235959Z
"""

from datetime import date, datetime, time
from typing import List

from dateutil import tz as dateutil_tz

from schedcal import weekday_codec
from schedcal.errors import InvalidScheduleError
from schedcal.event_models import Course, RecurrenceSpec
from schedcal.settings_manager import AppConfig
from schedcal.weekday_codec import Weekday

UNTIL_TIME_SUFFIX = "T235959Z"


def _parse_hhmm(value: str, field_name: str, course: Course) -> time:
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except (AttributeError, ValueError):
        raise InvalidScheduleError(
            f"Course {course.id} has invalid {field_name} {value!r} (expected HH:MM)",
            reason="invalid_time",
        )


def format_until(semester_end: date) -> str:
    """End-of-day UTC bound in the compact form the rule grammar expects."""
    return semester_end.strftime("%Y%m%d") + UNTIL_TIME_SUFFIX


def build_rule(weekdays: List[Weekday], semester_end: date) -> str:
    by_day = ",".join(day.code for day in weekdays)
    return f"FREQ=WEEKLY;BYDAY={by_day};UNTIL={format_until(semester_end)}"


class RecurrenceCompiler:
    """
    Compiles courses against a fixed, configured time zone.
    Stateless apart from the zone; safe to share across sync workers.
    """

    def __init__(self, config: AppConfig):
        self.time_zone = config.time_zone
        self._tzinfo = dateutil_tz.gettz(config.time_zone)
        if self._tzinfo is None:
            raise ValueError(f"Unknown time zone: {config.time_zone}")

    def weekdays_for(self, course: Course) -> List[Weekday]:
        """
        Recognized weekdays of a course, in the course's order.

        Raises:
            InvalidScheduleError: if no day label maps to a weekday
        """
        weekdays = weekday_codec.parse_days(course.days)
        if not weekdays:
            raise InvalidScheduleError(
                f"Course {course.id} has no recognizable meeting days: {course.days!r}",
                reason="no_weekdays",
            )
        return weekdays

    def compile(self, course: Course, first_occurrence: date, semester_end: date) -> RecurrenceSpec:
        """
        Compile one course.

        Args:
            course: Course to schedule
            first_occurrence: Date of the first meeting (from the occurrence resolver)
            semester_end: Last day (inclusive) on which meetings may occur

        Returns:
            RecurrenceSpec; identical inputs always give an equal spec

        Raises:
            InvalidScheduleError: no weekdays, malformed times, or end not after start
        """
        weekdays = self.weekdays_for(course)
        start_time = _parse_hhmm(course.start_time, "startTime", course)
        end_time = _parse_hhmm(course.end_time, "endTime", course)
        if start_time >= end_time:
            raise InvalidScheduleError(
                f"Course {course.id} ends at {course.end_time}, not after its start {course.start_time}",
                reason="end_before_start",
            )

        start = datetime.combine(first_occurrence, start_time, tzinfo=self._tzinfo)
        end = datetime.combine(first_occurrence, end_time, tzinfo=self._tzinfo)

        return RecurrenceSpec(
            rule=build_rule(weekdays, semester_end),
            until=format_until(semester_end),
            start=start.isoformat(),
            end=end.isoformat(),
            time_zone=self.time_zone,
            first_occurrence=first_occurrence,
            has_occurrences=first_occurrence <= semester_end,
        )
