"""
Sync orchestrator.
Runs every course through resolve -> compile -> insert independently and
collects one outcome per course. A failing course never stops its siblings;
only an auth failure stops the batch, since no other course can succeed with
the same credential.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from schedcal.errors import (
    AuthFailure,
    InvalidScheduleError,
    OccurrenceResolutionError,
    RemoteInsertFailure,
)
from schedcal.event_models import (
    CREATED,
    FAILED,
    NO_OCCURRENCES,
    SKIPPED,
    Course,
    CourseOutcome,
    RecurringEvent,
    SemesterWindow,
    SyncReport,
)
from schedcal.logging_helper import Log
from schedcal.occurrence_resolver import first_occurrence_on_or_after
from schedcal.recurrence_compiler import RecurrenceCompiler
from schedcal.settings_manager import AppConfig

COURSE_ERRORS = (InvalidScheduleError, OccurrenceResolutionError, RemoteInsertFailure)
UNEXPECTED_ERROR = "unexpected_error"


def build_event(course: Course, window: SemesterWindow, compiler: RecurrenceCompiler):
    """
    Resolve and compile one course.

    Returns:
        (RecurringEvent, RecurrenceSpec)
    """
    weekdays = compiler.weekdays_for(course)
    first = first_occurrence_on_or_after(window.start, [day.ordinal for day in weekdays])
    Log.kv({"stage": "resolve", "course_id": course.id, "first_occurrence": first.isoformat()})

    spec = compiler.compile(course, first, window.end)
    Log.kv({"stage": "compile", "course_id": course.id, "rule": spec.rule, "start": spec.start})
    return RecurringEvent.from_course(course, spec), spec


class SyncOrchestrator:
    """
    Materializes courses as recurring events on a calendar.

    Args:
        calendar: Object with insert_event(payload, calendar_id) -> event id
        config: Supplies the time zone, calendar id and worker count
    """

    def __init__(self, calendar, config: AppConfig):
        self.calendar = calendar
        self.config = config
        self.compiler = RecurrenceCompiler(config)

    def _sync_course(self, course: Course, window: SemesterWindow, abort: threading.Event) -> CourseOutcome:
        if abort.is_set():
            return CourseOutcome(course.id, SKIPPED, error_kind=AuthFailure.kind, message="Batch aborted")

        try:
            event, spec = build_event(course, window, self.compiler)
            if not spec.has_occurrences:
                Log.warn(
                    f"Course {course.id} first meets {spec.first_occurrence.isoformat()}, "
                    f"after the semester end {window.end.isoformat()} - not submitted"
                )
                Log.kv({"stage": "sync", "course_id": course.id, "result": NO_OCCURRENCES})
                return CourseOutcome(course.id, NO_OCCURRENCES, message="First occurrence is after the semester end")

            event_id = self.calendar.insert_event(event.to_payload(), self.config.calendar_id)
        except AuthFailure:
            abort.set()
            raise
        except COURSE_ERRORS as e:
            Log.warn(f"Course {course.id} failed: {e}")
            Log.kv({"stage": "sync", "course_id": course.id, "result": FAILED, "error": e.kind, "reason": e.reason})
            return CourseOutcome(course.id, FAILED, error_kind=e.kind, message=str(e))
        except Exception as e:
            Log.error(f"Course {course.id} failed unexpectedly: {type(e).__name__}: {e}")
            Log.kv({"stage": "sync", "course_id": course.id, "result": FAILED, "error": UNEXPECTED_ERROR})
            return CourseOutcome(course.id, FAILED, error_kind=UNEXPECTED_ERROR, message=f"{type(e).__name__}: {e}")

        Log.kv({"stage": "sync", "course_id": course.id, "result": CREATED, "event_id": event_id})
        return CourseOutcome(course.id, CREATED, event_id=event_id)

    def sync(self, courses: Sequence[Course], window: SemesterWindow) -> SyncReport:
        """
        Create one recurring event per course.

        Returns:
            SyncReport with outcomes in the same order as courses

        Raises:
            AuthFailure: the credential is missing or was rejected; the
                exception's partial_report holds whatever completed first
        """
        Log.section("Sync Orchestrator")
        Log.info(
            f"Syncing {len(courses)} course(s) for {window.start.isoformat()} .. {window.end.isoformat()}"
        )

        ensure_authorized = getattr(self.calendar, "ensure_authorized", None)
        if ensure_authorized is not None:
            ensure_authorized()

        # One slot per course, each written once by its own task
        slots: List[Optional[CourseOutcome]] = [None] * len(courses)
        abort = threading.Event()
        auth_error: Optional[AuthFailure] = None

        workers = min(self.config.sync_workers, max(len(courses), 1))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="CourseSync") as pool:
            futures = [pool.submit(self._sync_course, course, window, abort) for course in courses]
            for index, future in enumerate(futures):
                try:
                    slots[index] = future.result()
                except AuthFailure as e:
                    auth_error = auth_error or e
                    slots[index] = CourseOutcome(courses[index].id, FAILED, error_kind=e.kind, message=str(e))

        report = SyncReport([outcome for outcome in slots if outcome is not None])
        if auth_error is not None:
            Log.error(f"Sync aborted: {auth_error}")
            Log.kv({"stage": "sync", "result": "aborted", "reason": auth_error.reason})
            auth_error.partial_report = report
            raise auth_error

        Log.kv({
            "stage": "sync",
            "result": "success" if report.success else "partial",
            "created": sum(1 for o in report.outcomes if o.status == CREATED),
            "failed": len(report.failed()),
        })
        return report


def sync(courses: Sequence[Course], window: SemesterWindow, calendar, config: AppConfig) -> SyncReport:
    """Convenience wrapper around SyncOrchestrator.sync."""
    return SyncOrchestrator(calendar, config).sync(courses, window)
