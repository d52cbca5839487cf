"""
Error taxonomy for extraction, scheduling and calendar sync.

Each error carries a stable ``kind`` (used in per-course outcomes and in
``Log.kv`` telemetry) and a free-form ``reason`` describing the specific cause.
"""

from typing import Optional


class SchedCalError(Exception):
    """Base class for all SchedCal errors."""

    kind = "error"

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason or self.kind


class ExtractionFailure(SchedCalError):
    """Gateway unreachable, malformed model response, or unsupported image."""

    kind = "extraction_failure"


class InvalidScheduleError(SchedCalError):
    """A course has no resolvable weekday set or unusable meeting times."""

    kind = "invalid_schedule"


class OccurrenceResolutionError(SchedCalError):
    """The first occurrence was requested for an empty weekday set."""

    kind = "occurrence_resolution"


class RemoteInsertFailure(SchedCalError):
    """The calendar service rejected the event or did not answer in time."""

    kind = "remote_insert"

    def __init__(self, message: str, reason: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message, reason)
        self.status = status


class AuthFailure(SchedCalError):
    """Missing, expired or insufficiently scoped calendar credential."""

    kind = "auth_failure"

    # Set by the sync orchestrator when a batch is aborted midway
    partial_report = None
