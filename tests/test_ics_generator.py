from datetime import date

from conftest import make_course
from schedcal.event_models import SemesterWindow
from schedcal.ics_generator import _fold_line, build_ics, export_courses_to_ics
from schedcal.settings_manager import AppConfig


def test_export_writes_recurring_event(tmp_path, config, window):
    out = tmp_path / "out" / "schedule.ics"
    exported, skipped = export_courses_to_ics([make_course()], window, config, out)

    assert exported == 1
    assert skipped == []
    raw = out.read_bytes()
    assert b"\r\n" in raw
    text = raw.decode("utf-8")
    assert "BEGIN:VCALENDAR" in text
    assert "DTSTART;TZID=America/New_York:20240103T100000" in text
    assert "DTEND;TZID=America/New_York:20240103T113000" in text
    assert "RRULE:FREQ=WEEKLY;BYDAY=MO,WE;UNTIL=20240501T235959Z" in text
    assert "SUMMARY:CS 101 - Intro to Computer Science" in text
    assert "DESCRIPTION:Course: Intro to Computer Science\\nCode: CS 101" in text


def test_invalid_and_empty_courses_are_skipped(config):
    window = SemesterWindow(date(2024, 1, 3), date(2024, 1, 5))
    courses = [
        make_course("ok", days=["Thu"]),
        make_course("bad", days=["Nope"]),
        make_course("late", days=["Mon"]),
    ]
    content, skipped = build_ics(courses, window, config)
    assert content.count("BEGIN:VEVENT") == 1
    assert skipped == [("bad", "invalid_schedule"), ("late", "no_occurrences")]


def test_location_text_is_escaped(config, window):
    content, _ = build_ics([make_course(location="Hall A, Room 1; east")], window, config)
    assert "LOCATION:Hall A\\, Room 1\\; east" in content


def test_long_lines_are_folded():
    folded = _fold_line("SUMMARY:" + "x" * 200)
    parts = folded.split("\r\n")
    assert all(len(part.encode("utf-8")) <= 75 for part in parts)
    assert all(part.startswith(" ") for part in parts[1:])
    assert "".join(p[1:] if i else p for i, p in enumerate(parts)) == "SUMMARY:" + "x" * 200


def test_vtimezone_describes_referenced_zone(config, window):
    content, _ = build_ics([make_course()], window, config)
    lines = content.split("\r\n")

    assert lines.index("BEGIN:VTIMEZONE") < lines.index("BEGIN:VEVENT")
    assert "TZID:America/New_York" in lines
    daylight = lines[lines.index("BEGIN:DAYLIGHT"):lines.index("END:DAYLIGHT")]
    assert daylight[1:4] == ["DTSTART:20240310T020000", "TZOFFSETFROM:-0500", "TZOFFSETTO:-0400"]
    standard = lines[lines.index("BEGIN:STANDARD"):lines.index("END:STANDARD")]
    assert standard[1:4] == ["DTSTART:20241103T020000", "TZOFFSETFROM:-0400", "TZOFFSETTO:-0500"]


def test_vtimezone_for_zone_without_transitions(window):
    content, _ = build_ics([make_course()], window, AppConfig(time_zone="UTC", sync_workers=1))
    lines = content.split("\r\n")
    assert "TZID:UTC" in lines
    assert "BEGIN:DAYLIGHT" not in lines
    assert "TZOFFSETFROM:+0000" in lines and "TZOFFSETTO:+0000" in lines
