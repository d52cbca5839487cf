"""
Data models for course extraction and calendar sync.
Defines Course (from the LLM or user edits), SemesterWindow, the compiled
RecurrenceSpec / RecurringEvent, and per-course sync outcomes.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from dateutil import parser as dateutil_parser


@dataclass
class Course:
    """
    A single class meeting pattern.
    Times are local 24-hour "HH:MM"; days are weekday labels like "Mon".
    """
    id: str
    code: str
    name: str
    start_time: str
    end_time: str
    days: List[str] = field(default_factory=list)
    location: str = ""

    @property
    def title(self) -> str:
        return f"{self.code} - {self.name}"

    def to_dict(self) -> dict:
        """Serialize with the wire keys used by the review UI."""
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "days": list(self.days),
            "location": self.location,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Course":
        """Build a Course from a wire dict. Missing keys raise KeyError."""
        return cls(
            id=str(data["id"]),
            code=str(data.get("code") or ""),
            name=str(data.get("name") or ""),
            start_time=str(data["startTime"]),
            end_time=str(data["endTime"]),
            days=[str(d) for d in data.get("days") or []],
            location=str(data.get("location") or ""),
        )


@dataclass(frozen=True)
class SemesterWindow:
    """Inclusive semester date range, shared read-only by one sync operation."""
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(
                f"Semester start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    @classmethod
    def parse(cls, start: str, end: str) -> "SemesterWindow":
        """Parse two "YYYY-MM-DD" strings."""
        return cls(
            start=dateutil_parser.isoparse(start).date(),
            end=dateutil_parser.isoparse(end).date(),
        )


@dataclass(frozen=True)
class RecurrenceSpec:
    """Compiled recurrence for one course: rule plus the first concrete occurrence."""
    rule: str                 # FREQ=WEEKLY;BYDAY=MO,WE;UNTIL=20240501T235959Z
    until: str                # 20240501T235959Z
    start: str                # ISO-8601 with offset, first occurrence start
    end: str                  # ISO-8601 with offset, first occurrence end
    time_zone: str            # IANA zone the timestamps are expressed in
    first_occurrence: date
    has_occurrences: bool     # False when the first occurrence is after UNTIL

    @property
    def rrule_line(self) -> str:
        return f"RRULE:{self.rule}"


@dataclass(frozen=True)
class RecurringEvent:
    """
    Event payload derived from a Course and its RecurrenceSpec.
    Not persisted; discarded once the remote insert returns.
    """
    title: str
    location: str
    description: str
    first_occurrence_start: str
    first_occurrence_end: str
    time_zone: str
    recurrence_rule: str

    @classmethod
    def from_course(cls, course: Course, spec: RecurrenceSpec) -> "RecurringEvent":
        return cls(
            title=course.title,
            location=course.location,
            description=f"Course: {course.name}\nCode: {course.code}",
            first_occurrence_start=spec.start,
            first_occurrence_end=spec.end,
            time_zone=spec.time_zone,
            recurrence_rule=spec.rrule_line,
        )

    def to_payload(self) -> dict:
        """Body for the calendar service's events.insert call."""
        return {
            "summary": self.title,
            "location": self.location,
            "description": self.description,
            "start": {
                "dateTime": self.first_occurrence_start,
                "timeZone": self.time_zone,
            },
            "end": {
                "dateTime": self.first_occurrence_end,
                "timeZone": self.time_zone,
            },
            "recurrence": [self.recurrence_rule],
        }


# Outcome statuses
CREATED = "created"
NO_OCCURRENCES = "no_occurrences"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass(frozen=True)
class CourseOutcome:
    """Result of syncing one course."""
    course_id: str
    status: str
    event_id: Optional[str] = None
    error_kind: Optional[str] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (CREATED, NO_OCCURRENCES)

    def to_dict(self) -> dict:
        data = {"courseId": self.course_id, "status": self.status}
        if self.event_id is not None:
            data["eventId"] = self.event_id
        if self.error_kind is not None:
            data["error"] = self.error_kind
        if self.message is not None:
            data["message"] = self.message
        return data


@dataclass(frozen=True)
class SyncReport:
    """Outcomes of one sync call, in course input order."""
    outcomes: List[CourseOutcome]

    @property
    def success(self) -> bool:
        return all(outcome.ok for outcome in self.outcomes)

    def failed(self) -> List[CourseOutcome]:
        return [o for o in self.outcomes if o.status == FAILED]

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "results": [o.to_dict() for o in self.outcomes],
        }
