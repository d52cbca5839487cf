import json

import pytest

from conftest import make_course
from schedcal.course_store import load_courses, remove_course, save_courses


def test_save_and_load_roundtrip(tmp_path):
    path = tmp_path / "review" / "courses.json"
    courses = [make_course("1"), make_course("2", days=["Fri"], code="PHYS 101")]
    save_courses(courses, path)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["courses"][0]["startTime"] == "10:00"
    assert load_courses(path) == courses


def test_hand_edits_are_normalized(tmp_path):
    path = tmp_path / "courses.json"
    path.write_text(json.dumps({"courses": [
        {"id": "9", "code": "ART 1", "name": "Drawing", "startTime": "6:00 PM",
         "endTime": "8:30 PM", "days": ["Thursday"], "location": ""},
    ]}), encoding="utf-8")
    course = load_courses(path)[0]
    assert (course.start_time, course.end_time, course.days) == ("18:00", "20:30", ["Thu"])


def test_bare_list_is_accepted(tmp_path):
    path = tmp_path / "courses.json"
    path.write_text(json.dumps([make_course().to_dict()]), encoding="utf-8")
    assert len(load_courses(path)) == 1


def test_invalid_json_raises_value_error(tmp_path):
    path = tmp_path / "courses.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(ValueError):
        load_courses(path)


def test_remove_course():
    courses = [make_course("1"), make_course("2")]
    assert [c.id for c in remove_course(courses, "1")] == ["2"]
    assert len(courses) == 2


def test_load_can_keep_unrepaired_courses(tmp_path):
    path = tmp_path / "courses.json"
    bad = dict(make_course("2").to_dict(), days=["Caturday"])
    path.write_text(json.dumps({"courses": [make_course("1").to_dict(), bad]}), encoding="utf-8")

    assert [c.id for c in load_courses(path)] == ["1"]
    assert [c.id for c in load_courses(path, drop_invalid=False)] == ["1", "2"]
