"""
Course normalizer for converting raw model records into Course objects.
Handles time parsing ("1:30 PM" -> "13:30"), weekday canonicalization and
id generation. Records that cannot be repaired are dropped with a warning.
"""

import uuid
from datetime import datetime
from typing import Iterable, List, Optional

from dateutil import parser as dateutil_parser

from schedcal import weekday_codec
from schedcal.event_models import Course
from schedcal.logging_helper import Log


def _normalize_time(value) -> Optional[str]:
    """
    Parse a time string into 24-hour "HH:MM".

    Args:
        value: "14:30", "2:30 PM", "0930", ...

    Returns:
        "HH:MM" or None if the value is not a time
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return datetime.strptime(text, "%H:%M").strftime("%H:%M")
    except ValueError:
        pass
    try:
        # Fixed default keeps the parse independent of today's date
        parsed = dateutil_parser.parse(text, default=datetime(2000, 1, 1))
    except (ValueError, OverflowError):
        return None
    if parsed.second or parsed.microsecond:
        return None
    return parsed.strftime("%H:%M")


def _normalize_days(raw_days) -> List[str]:
    if isinstance(raw_days, str):
        raw_days = [part for part in raw_days.replace("/", ",").split(",")]
    if not isinstance(raw_days, (list, tuple)):
        return []
    days: List[str] = []
    for raw in raw_days:
        label = weekday_codec.canonical_label(raw)
        if label is None:
            Log.warn(f"Dropping unrecognized day label: {raw!r}")
            continue
        if label not in days:
            days.append(label)
    return days


def normalize_record(record: dict) -> Optional[Course]:
    """
    Normalize one raw record. Returns None if it cannot become a valid Course.
    """
    if not isinstance(record, dict):
        Log.warn(f"Skipping non-object course record: {record!r}")
        return None

    start_time = _normalize_time(record.get("startTime"))
    end_time = _normalize_time(record.get("endTime"))
    if start_time is None or end_time is None:
        Log.warn(f"Skipping record with unparseable times: {record!r}")
        Log.kv({"stage": "normalize", "result": "skipped", "reason": "invalid_time"})
        return None
    if start_time >= end_time:
        Log.warn(f"Skipping record whose end {end_time} is not after start {start_time}")
        Log.kv({"stage": "normalize", "result": "skipped", "reason": "end_before_start"})
        return None

    days = _normalize_days(record.get("days"))
    if not days:
        Log.warn(f"Skipping record without recognizable days: {record!r}")
        Log.kv({"stage": "normalize", "result": "skipped", "reason": "no_weekdays"})
        return None

    course_id = str(record.get("id") or "").strip() or uuid.uuid4().hex[:8]
    return Course(
        id=course_id,
        code=str(record.get("code") or "").strip(),
        name=str(record.get("name") or "").strip(),
        start_time=start_time,
        end_time=end_time,
        days=days,
        location=str(record.get("location") or "").strip(),
    )


def _unrepaired_course(record: dict) -> Course:
    """Carry a record through as-is so validation can report it per course."""
    raw_days = record.get("days")
    if isinstance(raw_days, str):
        raw_days = [raw_days]
    elif not isinstance(raw_days, (list, tuple)):
        raw_days = []
    return Course(
        id=str(record.get("id") or "").strip() or uuid.uuid4().hex[:8],
        code=str(record.get("code") or "").strip(),
        name=str(record.get("name") or "").strip(),
        start_time=str(record.get("startTime") or "").strip(),
        end_time=str(record.get("endTime") or "").strip(),
        days=[str(day) for day in raw_days],
        location=str(record.get("location") or "").strip(),
    )


def normalize_records(records: Iterable[dict], drop_invalid: bool = True) -> List[Course]:
    """
    Normalize model output into Courses, keeping input order.
    Duplicate ids get a fresh id so review edits stay unambiguous.

    With drop_invalid=False, object records that cannot be repaired are kept
    unchanged instead of dropped, so a sync reports them as invalid_schedule.
    """
    Log.section("Course Normalizer")
    courses: List[Course] = []
    seen_ids = set()
    skipped = 0
    for record in records:
        course = normalize_record(record)
        if course is None:
            if drop_invalid or not isinstance(record, dict):
                skipped += 1
                continue
            course = _unrepaired_course(record)
            Log.warn(f"Keeping unrepaired course {course.id} for validation")
        if course.id in seen_ids:
            course.id = uuid.uuid4().hex[:8]
        seen_ids.add(course.id)
        courses.append(course)

    Log.info(f"Normalized {len(courses)} course(s), skipped {skipped}")
    Log.kv({"stage": "normalize", "result": "success", "courses": len(courses), "skipped": skipped})
    return courses
