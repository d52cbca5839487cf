"""
Main entry point for SchedCal.

Commands:
    extract IMAGE --start --end [-o courses.json]   photo -> review file
    sync COURSES --start --end [--token TOKEN]       review file -> Google Calendar
    export COURSES --start --end -o schedule.ics     review file -> .ics file
    config [--time-zone ZONE]                        show or change settings
"""

import argparse
import json
import mimetypes
import os
import sys
from pathlib import Path
from typing import List, Optional

from schedcal.calendar_connector import GoogleCalendarClient
from schedcal.course_store import load_courses, save_courses
from schedcal.errors import AuthFailure, ExtractionFailure
from schedcal.event_models import Course, SemesterWindow
from schedcal.ics_generator import export_courses_to_ics
from schedcal.image_llm_client import get_llm_client
from schedcal.logging_helper import Log
from schedcal.settings_manager import AppConfig, load_config, set_time_zone, settings_file
from schedcal.sync_orchestrator import SyncOrchestrator

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_AUTH = 2
EXIT_USAGE = 2


def handle_sync_request(request: dict, access_token: Optional[str], config: AppConfig, calendar=None) -> dict:
    """
    Sync request surface: {courses, startDate, endDate} -> {success, results}.

    An auth failure is reported as {"success": false, "error": "auth_failure"}
    so the caller can re-authenticate instead of retrying single events.
    Malformed requests raise ValueError.
    """
    try:
        window = SemesterWindow.parse(request["startDate"], request["endDate"])
        records = request["courses"]
    except KeyError as e:
        raise ValueError(f"Missing field in sync request: {e}") from e
    if not isinstance(records, list):
        raise ValueError("courses must be a list")

    try:
        courses = [Course.from_dict(record) for record in records]
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"Malformed course in sync request: {e}") from e

    calendar = calendar or GoogleCalendarClient(access_token, timeout=config.request_timeout)
    try:
        report = SyncOrchestrator(calendar, config).sync(courses, window)
    except AuthFailure as e:
        response = {"success": False, "error": e.kind, "message": str(e)}
        if e.partial_report is not None:
            response["results"] = e.partial_report.to_dict()["results"]
        return response
    return report.to_dict()


def _print_courses(courses):
    for course in courses:
        days = ",".join(course.days)
        location = f" @ {course.location}" if course.location else ""
        print(f"  [{course.id}] {course.code} - {course.name}: {days} {course.start_time}-{course.end_time}{location}")


def cmd_extract(args, config: AppConfig) -> int:
    image_path = Path(args.image)
    media_type = args.media_type or mimetypes.guess_type(image_path.name)[0] or "application/octet-stream"
    window = SemesterWindow.parse(args.start, args.end)

    client = get_llm_client(config)
    try:
        courses = client.extract_courses(image_path.read_bytes(), media_type, window)
    except ExtractionFailure as e:
        Log.error(f"Extraction failed ({e.reason}): {e}")
        return EXIT_PARTIAL

    save_courses(courses, args.output)
    print(f"Extracted {len(courses)} course(s) ({client.provider}) -> {args.output}")
    _print_courses(courses)
    return EXIT_OK


def cmd_sync(args, config: AppConfig) -> int:
    # Unrepairable courses stay in the request and come back as invalid_schedule
    request = {
        "courses": [c.to_dict() for c in load_courses(args.courses, drop_invalid=False)],
        "startDate": args.start,
        "endDate": args.end,
    }
    token = args.token or os.environ.get("GOOGLE_ACCESS_TOKEN")
    response = handle_sync_request(request, token, config)
    print(json.dumps(response, indent=2))

    if response.get("error") == AuthFailure.kind:
        return EXIT_AUTH
    return EXIT_OK if response["success"] else EXIT_PARTIAL


def cmd_export(args, config: AppConfig) -> int:
    courses = load_courses(args.courses)
    window = SemesterWindow.parse(args.start, args.end)
    exported, skipped = export_courses_to_ics(courses, window, config, args.output)
    print(f"Exported {exported} event(s) -> {args.output}")
    for course_id, reason in skipped:
        print(f"  skipped [{course_id}]: {reason}")
    return EXIT_OK if not skipped else EXIT_PARTIAL


def cmd_config(args, config: AppConfig) -> int:
    if args.time_zone:
        set_time_zone(args.time_zone)
        print(f"Time zone set to {args.time_zone}")
        return EXIT_OK
    print(f"Settings file: {settings_file()}")
    print(f"time_zone={config.time_zone}")
    print(f"model={config.model}")
    print(f"request_timeout={config.request_timeout}")
    print(f"sync_workers={config.sync_workers}")
    print(f"calendar_id={config.calendar_id}")
    print(f"api_key={'set' if config.api_key else 'absent (sample mode)'}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="schedcal", description="Course schedule photo -> recurring calendar events")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_window(p):
        p.add_argument("--start", required=True, help="Semester start (YYYY-MM-DD)")
        p.add_argument("--end", required=True, help="Semester end (YYYY-MM-DD)")

    p_extract = sub.add_parser("extract", help="Extract courses from a schedule photo")
    p_extract.add_argument("image")
    p_extract.add_argument("--media-type", help="Override the detected image MIME type")
    p_extract.add_argument("-o", "--output", default="courses.json")
    add_window(p_extract)
    p_extract.set_defaults(func=cmd_extract)

    p_sync = sub.add_parser("sync", help="Create recurring Google Calendar events")
    p_sync.add_argument("courses")
    p_sync.add_argument("--token", help="OAuth access token (default: $GOOGLE_ACCESS_TOKEN)")
    add_window(p_sync)
    p_sync.set_defaults(func=cmd_sync)

    p_export = sub.add_parser("export", help="Write recurring events to an .ics file")
    p_export.add_argument("courses")
    p_export.add_argument("-o", "--output", default="schedule.ics")
    add_window(p_export)
    p_export.set_defaults(func=cmd_export)

    p_config = sub.add_parser("config", help="Show or change settings")
    p_config.add_argument("--time-zone", help="IANA time zone for course times")
    p_config.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)

    Log.section("SchedCal")
    Log.info(f"Log file: {Log.get_log_path()}")

    try:
        config = load_config()
        return args.func(args, config)
    except (ValueError, OSError) as e:
        Log.error(str(e))
        print(f"schedcal: error: {e}", file=sys.stderr)
        return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
