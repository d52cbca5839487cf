"""
ICS Generator for exporting courses as recurring iCalendar (.ics) events.
Offline alternative to the Google Calendar sync: compiles each course with the
same recurrence compiler and writes one RFC5545 VEVENT per course, plus a
VTIMEZONE for the configured zone covering the semester years.
"""

import hashlib
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Sequence, Tuple

from dateutil import parser as dateutil_parser
from dateutil import tz as dateutil_tz

from schedcal.errors import InvalidScheduleError, OccurrenceResolutionError
from schedcal.event_models import Course, SemesterWindow
from schedcal.logging_helper import Log
from schedcal.recurrence_compiler import RecurrenceCompiler
from schedcal.settings_manager import AppConfig
from schedcal.sync_orchestrator import build_event

MAX_LINE_OCTETS = 75
TRANSITION_SCAN_STEP = timedelta(hours=1)
TRANSITION_REFINE_STEP = timedelta(minutes=15)


def _escape_ical_text(text: str) -> str:
    """
    Escape text for iCalendar format (RFC5545).
    Escapes commas, semicolons, backslashes, and newlines.
    """
    if text is None:
        return ""

    # Replace backslashes first (before other replacements)
    text = text.replace('\\', '\\\\')
    text = text.replace(';', '\\;')
    text = text.replace(',', '\\,')
    text = text.replace('\r', '')
    text = text.replace('\n', '\\n')
    return text


def _fold_line(line: str) -> str:
    """
    Fold a content line to at most 75 octets per physical line.
    Continuation lines start with a single space.
    """
    lines = []
    current_line = ""
    for char in line:
        test_line = current_line + char
        if len(test_line.encode('utf-8')) <= MAX_LINE_OCTETS:
            current_line = test_line
        else:
            lines.append(current_line)
            current_line = " " + char
    lines.append(current_line)
    return '\r\n'.join(lines)


def _format_local(iso_timestamp: str) -> str:
    """ISO timestamp with offset -> floating local form for a TZID-qualified DTSTART."""
    return dateutil_parser.isoparse(iso_timestamp).strftime('%Y%m%dT%H%M%S')


def _format_offset(offset: timedelta) -> str:
    total = int(offset.total_seconds()) // 60
    sign = '-' if total < 0 else '+'
    hours, minutes = divmod(abs(total), 60)
    return f"{sign}{hours:02d}{minutes:02d}"


def _vtimezone_lines(tzid: str, window: SemesterWindow) -> List[str]:
    """
    Build a VTIMEZONE for tzid with one observance per offset change in the
    calendar years the window touches. A zone without changes gets a single
    STANDARD observance.
    """
    zone = dateutil_tz.gettz(tzid)
    utc = dateutil_tz.tzutc()
    instant = datetime(window.start.year, 1, 1, tzinfo=utc)
    stop = datetime(window.end.year + 1, 1, 1, tzinfo=utc)

    local = instant.astimezone(zone)
    previous = local.utcoffset()
    observances = []
    while instant < stop:
        local = instant.astimezone(zone)
        offset = local.utcoffset()
        if offset != previous:
            # Narrow down to the quarter hour; some zones change at :30
            change = instant - TRANSITION_SCAN_STEP
            while change + TRANSITION_REFINE_STEP <= instant:
                change += TRANSITION_REFINE_STEP
                if change.astimezone(zone).utcoffset() == offset:
                    break
            # Onset is expressed in the wall time that was in effect before it
            onset = (change + previous).replace(tzinfo=None)
            kind = "DAYLIGHT" if local.dst() else "STANDARD"
            observances.append((kind, onset, previous, offset, local.tzname()))
            previous = offset
        instant += TRANSITION_SCAN_STEP

    if not observances:
        local = datetime(window.start.year, 1, 1, tzinfo=utc).astimezone(zone)
        offset = local.utcoffset()
        observances.append(("STANDARD", datetime(1970, 1, 1), offset, offset, local.tzname()))

    lines = ["BEGIN:VTIMEZONE", f"TZID:{tzid}"]
    for kind, onset, offset_from, offset_to, name in observances:
        lines.append(f"BEGIN:{kind}")
        lines.append(f"DTSTART:{onset.strftime('%Y%m%dT%H%M%S')}")
        lines.append(f"TZOFFSETFROM:{_format_offset(offset_from)}")
        lines.append(f"TZOFFSETTO:{_format_offset(offset_to)}")
        if name:
            lines.append(f"TZNAME:{name}")
        lines.append(f"END:{kind}")
    lines.append("END:VTIMEZONE")
    return lines


def _event_uid(course: Course, rule: str) -> str:
    uid_string = f"{course.id}_{course.code}_{rule}"
    return hashlib.md5(uid_string.encode()).hexdigest() + "@schedcal.local"


def build_ics(courses: Sequence[Course], window: SemesterWindow, config: AppConfig) -> Tuple[str, List[Tuple[str, str]]]:
    """
    Build the ICS document.

    Returns:
        (ics_content, skipped) where skipped lists (course_id, reason) for
        courses that could not be compiled or have no occurrences
    """
    compiler = RecurrenceCompiler(config)
    dtstamp = datetime.now(dateutil_tz.tzutc()).strftime('%Y%m%dT%H%M%SZ')

    ics_lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//SchedCal//SchedCal//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]
    ics_lines.extend(_vtimezone_lines(config.time_zone, window))
    skipped: List[Tuple[str, str]] = []

    for course in courses:
        try:
            event, spec = build_event(course, window, compiler)
        except (InvalidScheduleError, OccurrenceResolutionError) as e:
            Log.warn(f"Skipping course {course.id} in ICS export: {e}")
            skipped.append((course.id, e.kind))
            continue
        if not spec.has_occurrences:
            skipped.append((course.id, "no_occurrences"))
            continue

        ics_lines.append("BEGIN:VEVENT")
        ics_lines.append(f"UID:{_event_uid(course, spec.rule)}")
        ics_lines.append(f"DTSTAMP:{dtstamp}")
        ics_lines.append(f"DTSTART;TZID={spec.time_zone}:{_format_local(spec.start)}")
        ics_lines.append(f"DTEND;TZID={spec.time_zone}:{_format_local(spec.end)}")
        ics_lines.append(spec.rrule_line)
        ics_lines.append(f"SUMMARY:{_escape_ical_text(event.title)}")
        ics_lines.append(f"DESCRIPTION:{_escape_ical_text(event.description)}")
        if event.location:
            ics_lines.append(f"LOCATION:{_escape_ical_text(event.location)}")
        ics_lines.append("END:VEVENT")

    ics_lines.append("END:VCALENDAR")
    content = '\r\n'.join(_fold_line(line) for line in ics_lines) + '\r\n'
    return content, skipped


def export_courses_to_ics(
    courses: Sequence[Course],
    window: SemesterWindow,
    config: AppConfig,
    out_path,
) -> Tuple[int, List[Tuple[str, str]]]:
    """
    Write courses to an .ics file.

    Returns:
        (number of exported events, skipped (course_id, reason) pairs)
    """
    Log.section("ICS Generator")
    content, skipped = build_ics(courses, window, config)

    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    # newline='' keeps the CRLF line endings RFC5545 requires
    with open(out, 'w', encoding='utf-8', newline='') as f:
        f.write(content)

    exported = len(courses) - len(skipped)
    Log.info(f"ICS file generated: {out}")
    Log.kv({"stage": "ics", "result": "success", "ics_path": str(out), "events": exported, "skipped": len(skipped)})
    return exported, skipped
