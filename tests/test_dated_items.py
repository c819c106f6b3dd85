from datetime import date, datetime

from school_calendar import expander, models
from school_calendar.util import parse_timezone

TZ = parse_timezone("Europe/London")


def test_multi_day_test_emits_start_and_end_markers():
    test = models.Test(
        id=3,
        title="Midterm",
        start_date="2024-10-01T09:00:00",
        end_date="2024-10-03T09:00:00",
        course_name="Physics",
        teacher_username="bek",
    )
    occurrences = expander.expand_dated_items([test], tz=TZ)
    assert [o.id for o in occurrences] == ["test-start-3", "test-end-3"]
    start, end = occurrences
    assert start.start == datetime(2024, 10, 1, 9, 0, tzinfo=TZ)
    assert start.end == datetime(2024, 10, 1, 10, 0, tzinfo=TZ)
    assert end.start == datetime(2024, 10, 3, 9, 0, tzinfo=TZ)
    assert end.end == datetime(2024, 10, 3, 10, 0, tzinfo=TZ)
    assert start.title == "Начало теста: Midterm"
    assert end.title == "Конец теста: Midterm"
    assert {o.category for o in occurrences} == {"test"}


def test_same_day_test_defaults_to_one_hour():
    test = models.Test(id=4, title="Quiz", start_date="2024-12-02T09:00:00Z")
    (occurrence,) = expander.expand_dated_items([test], tz=TZ)
    assert occurrence.id == "test-4"
    assert occurrence.title == "Тест: Quiz"
    assert occurrence.start == datetime(2024, 12, 2, 9, 0, tzinfo=TZ)
    assert occurrence.end == datetime(2024, 12, 2, 10, 0, tzinfo=TZ)
    assert occurrence.time == "09:00"


def test_assignment_is_one_hour_from_due_time():
    assignment = models.Assignment(
        id=5, title="Essay", due_at="2024-11-12T23:30:00", course_name="Literature"
    )
    (occurrence,) = expander.expand_dated_items(assignments=[assignment], tz=TZ)
    assert occurrence.id == "assignment-5"
    assert occurrence.category == "assignment"
    assert occurrence.end.date() == date(2024, 11, 13)
    assert occurrence.subject == "Literature"


def test_custom_event_keeps_type_and_metadata():
    event = models.from_dict(
        models.CustomEvent,
        {
            "id": 9,
            "title": "Parents meeting",
            "type": "meeting",
            "start_at": "2024-11-15T18:00:00",
            "end_at": None,
            "location": "Hall",
            "target_audience": "parents",
            "target_users_details": [{"id": 1, "username": "p1"}],
            "unexpected": "ignored",
        },
    )
    (occurrence,) = expander.expand_dated_items(events=[event], tz=TZ)
    assert occurrence.id == "event-9"
    assert occurrence.category == "meeting"
    assert occurrence.category_label == "Собрание"
    assert occurrence.end == datetime(2024, 11, 15, 19, 0, tzinfo=TZ)
    assert occurrence.location == "Hall"
    assert occurrence.target_users == [models.TargetUser(id=1, username="p1")]


def test_unknown_event_type_becomes_other():
    warnings = []
    event = models.CustomEvent(
        id=1, title="Fair", type="fair", start_at="2024-11-15T12:00:00"
    )
    (occurrence,) = expander.expand_dated_items(events=[event], tz=TZ, warnings=warnings)
    assert occurrence.category == "other"
    assert occurrence.category_label == "fair"
    assert len(warnings) == 1


def test_dated_items_keep_category_order():
    occurrences = expander.expand_dated_items(
        [models.Test(id=1, title="T", start_date="2024-11-15T09:00:00")],
        [models.Assignment(id=1, title="A", due_at="2024-11-14T09:00:00")],
        [models.CustomEvent(id=1, title="E", type="other", start_at="2024-11-13T09:00:00")],
        tz=TZ,
    )
    assert [o.id for o in occurrences] == ["test-1", "assignment-1", "event-1"]


def test_unparsable_item_is_skipped():
    warnings = []
    occurrences = expander.expand_dated_items(
        [models.Test(id=1, title="Broken", start_date="soon")],
        [models.Assignment(id=2, title="Ok", due_at="2024-11-14T09:00:00")],
        tz=TZ,
        warnings=warnings,
    )
    assert [o.id for o in occurrences] == ["assignment-2"]
    assert len(warnings) == 1
    assert "test 1" in warnings[0]
