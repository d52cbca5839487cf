from schedcal.course_normalizer import normalize_record, normalize_records


def record(**overrides):
    base = {
        "id": "1",
        "code": "CS 101",
        "name": "Intro to Computer Science",
        "startTime": "10:00",
        "endTime": "11:30",
        "days": ["Mon", "Wed"],
        "location": "Science Hall 101",
    }
    base.update(overrides)
    return base


def test_clean_record_passes_through():
    course = normalize_record(record())
    assert course.to_dict() == record()


def test_twelve_hour_times_are_converted():
    course = normalize_record(record(startTime="1:05 pm", endTime="2:20 PM"))
    assert (course.start_time, course.end_time) == ("13:05", "14:20")


def test_day_labels_are_canonicalized_and_deduplicated():
    course = normalize_record(record(days=["wednesday", "Mon", "WED", "Holiday"]))
    assert course.days == ["Wed", "Mon"]


def test_comma_separated_day_string_is_accepted():
    assert normalize_record(record(days="Tue, Thu")).days == ["Tue", "Thu"]


def test_invalid_records_are_dropped():
    assert normalize_record(record(days=["Someday"])) is None
    assert normalize_record(record(startTime="soon")) is None
    assert normalize_record(record(startTime="12:00", endTime="11:00")) is None
    assert normalize_record("CS 101") is None


def test_missing_location_becomes_empty_string():
    course = normalize_record(record(location=None))
    assert course.location == ""


def test_missing_and_duplicate_ids_are_generated():
    courses = normalize_records([record(id=None), record(id="7"), record(id="7")])
    ids = [c.id for c in courses]
    assert len(ids) == 3
    assert len(set(ids)) == 3
    assert ids[1] == "7"
    assert all(ids)


def test_order_is_preserved():
    courses = normalize_records([record(id="b", code="B"), record(id="x", days=[]), record(id="a", code="A")])
    assert [c.code for c in courses] == ["B", "A"]


def test_unrepaired_records_can_be_kept():
    records = [record(), record(id="2", days=["Caturday"]), record(id="3", startTime="soon"), "junk"]
    courses = normalize_records(records, drop_invalid=False)

    assert [c.id for c in courses] == ["1", "2", "3"]
    assert courses[1].days == ["Caturday"]
    assert courses[2].start_time == "soon"
