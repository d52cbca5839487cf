"""
Review file for extracted courses.

Extraction writes the courses to a JSON file ({"courses": [...]}) that the
user can edit before syncing. Records use the same keys as the extraction
output (id, code, name, startTime, endTime, days, location).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, List

from schedcal.course_normalizer import normalize_records
from schedcal.event_models import Course
from schedcal.logging_helper import Log


def load_courses(path: str | Path, drop_invalid: bool = True) -> List[Course]:
    """
    Load courses from a review file.

    Hand-edited records go through the same normalizer as model output, so
    "Monday" or "1:30 PM" are accepted. Records that cannot be repaired are
    dropped with a warning, or kept unchanged when drop_invalid is False.

    Raises:
        ValueError: if the file is not valid JSON or has no course list
        OSError: if the file cannot be read
    """
    course_path = Path(path)
    try:
        data = json.loads(course_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Course file {course_path} is not valid JSON: {e}") from e

    records = data.get("courses") if isinstance(data, dict) else data
    if not isinstance(records, list):
        raise ValueError(f"Course file {course_path} has no course list")

    courses = normalize_records(records, drop_invalid=drop_invalid)
    Log.info(f"Loaded {len(courses)} course(s) from {course_path}")
    return courses


def save_courses(courses: Iterable[Course], path: str | Path) -> None:
    """
    Write courses to a review file, creating parent directories if needed.
    """
    course_path = Path(path)
    course_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"courses": [c.to_dict() for c in courses]}
    course_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    Log.info(f"Saved {len(payload['courses'])} course(s) to {course_path}")


def remove_course(courses: Iterable[Course], course_id: str) -> List[Course]:
    """Return the courses without the one whose id matches."""
    return [c for c in courses if c.id != course_id]
