from datetime import date, time

from school_calendar import expander, models
from school_calendar.util import parse_timezone

TZ = parse_timezone("Europe/London")


def make_slot(**overrides):
    base = {
        "id": 1,
        "subject_group": 10,
        "day_of_week": 0,
        "start_time": "09:00:00",
        "end_time": "09:45:00",
        "room": "204",
        "subject_group_course_name": "Algebra",
        "subject_group_classroom_display": "7A",
        "subject_group_teacher_fullname": "Aigerim Serikovna Nurlanova",
    }
    base.update(overrides)
    return models.ScheduleSlot(**base)


def make_year(**overrides):
    base = {"id": 1, "start_date": "2024-09-02", "end_date": "2024-09-30"}
    base.update(overrides)
    return models.AcademicYear(**base)


def days(occurrences):
    return [o.day for o in occurrences]


def test_empty_slots_return_nothing():
    assert expander.expand([], None, tz=TZ) == []
    assert expander.expand([], make_year(), tz=TZ) == []


def test_holiday_dates_are_skipped():
    year = make_year(
        autumn_holiday_start="2024-09-09", autumn_holiday_end="2024-09-15"
    )
    occurrences = expander.expand([make_slot()], year, tz=TZ)
    assert days(occurrences) == [
        date(2024, 9, 2),
        date(2024, 9, 16),
        date(2024, 9, 23),
        date(2024, 9, 30),
    ]


def test_holiday_with_one_bound_is_ignored():
    year = make_year(winter_holiday_start="2024-09-09")
    occurrences = expander.expand([make_slot()], year, tz=TZ)
    assert date(2024, 9, 9) in days(occurrences)


def test_weekend_slots_are_expanded():
    occurrences = expander.expand([make_slot(day_of_week=5)], make_year(), tz=TZ)
    assert days(occurrences) == [
        date(2024, 9, 7),
        date(2024, 9, 14),
        date(2024, 9, 21),
        date(2024, 9, 28),
    ]
    assert all(o.day.weekday() == 5 for o in occurrences)


def test_quarter_ranges_use_default_weeks():
    year = make_year(start_date="2024-09-01", end_date="2025-05-31")
    assert expander.quarter_ranges(year) == [
        (date(2024, 9, 1), date(2024, 10, 26)),
        (date(2024, 10, 27), date(2024, 12, 21)),
        (date(2024, 12, 22), date(2025, 3, 1)),
        (date(2025, 3, 2), date(2025, 4, 26)),
    ]


def test_quarter_restricted_slot_stays_in_its_quarter():
    year = make_year(start_date="2024-09-01", end_date="2025-05-31")
    occurrences = expander.expand([make_slot(quarter=2)], year, tz=TZ)
    assert len(occurrences) == 8
    assert occurrences[0].day == date(2024, 10, 28)
    assert occurrences[-1].day == date(2024, 12, 16)
    assert all(date(2024, 10, 27) <= d <= date(2024, 12, 21) for d in days(occurrences))


def test_quarter_ignored_without_academic_year():
    occurrences = expander.expand(
        [make_slot(quarter=3)], None, tz=TZ, today=date(2026, 10, 21)
    )
    assert len(occurrences) == 14
    assert occurrences[0].day == date(2026, 10, 19)
    assert occurrences[-1].day == date(2027, 1, 18)


def test_fallback_window_starts_on_monday():
    assert expander.fallback_window(date(2026, 10, 21)) == (
        date(2026, 10, 19),
        date(2027, 1, 19),
    )
    # Sunday belongs to the week before
    assert expander.fallback_window(date(2026, 10, 25))[0] == date(2026, 10, 19)
    assert expander.fallback_window(date(2026, 11, 30)) == (
        date(2026, 11, 30),
        date(2027, 2, 28),
    )


def test_slot_date_range_restricts_occurrences():
    slot = make_slot(start_date="2024-09-10", end_date="2024-09-24")
    occurrences = expander.expand([slot], make_year(), tz=TZ)
    assert days(occurrences) == [date(2024, 9, 16), date(2024, 9, 23)]


def test_schedule_occurrence_fields():
    occurrence = expander.expand([make_slot()], make_year(), tz=TZ)[0]
    assert occurrence.id == "schedule-1-2024-09-02"
    assert occurrence.category == "schedule"
    assert occurrence.source_id == 1
    assert occurrence.title == "Algebra • 7A • Каб. 204"
    assert occurrence.teacher == "Nurlanova"
    assert occurrence.teacher_full_name == "Aigerim Serikovna Nurlanova"
    assert occurrence.time == "09:00 - 09:45"
    assert occurrence.start.time() == time(9, 0)
    assert occurrence.end.time() == time(9, 45)
    assert occurrence.start.tzinfo is TZ


def test_missing_display_fields_fall_back():
    slot = make_slot(
        room=None,
        subject_group_course_name=None,
        subject_group_classroom_display=None,
        subject_group_teacher_fullname=None,
        subject_group_teacher_username="teacher1",
        start_time="14:00",
        end_time="14:45",
    )
    occurrence = expander.expand([slot], make_year(), tz=TZ)[0]
    assert occurrence.title == "Предмет"
    assert occurrence.teacher == "teacher1"
    assert occurrence.time == "14:00 - 14:45"


def test_slots_on_same_day_keep_input_order():
    slots = [make_slot(id=1), make_slot(id=2, start_time="10:00", end_time="10:45")]
    occurrences = expander.expand(slots, make_year(end_date="2024-09-02"), tz=TZ)
    assert [o.id for o in occurrences] == [
        "schedule-1-2024-09-02",
        "schedule-2-2024-09-02",
    ]


def test_malformed_slots_are_skipped_with_warnings():
    warnings = []
    slots = [
        make_slot(id=1, start_time=""),
        make_slot(id=2, end_time=None),
        make_slot(id=3, start_time="10:00", end_time="09:00"),
        make_slot(id=4, day_of_week=9),
        make_slot(id=5),
    ]
    occurrences = expander.expand(slots, make_year(), tz=TZ, warnings=warnings)
    assert {o.source_id for o in occurrences} == {5}
    assert len(warnings) == 4
    assert "slot 1" in warnings[0]


def test_invalid_year_falls_back_to_default_window():
    warnings = []
    year = make_year(start_date="not-a-date")
    occurrences = expander.expand(
        [make_slot()], year, tz=TZ, today=date(2026, 10, 21), warnings=warnings
    )
    assert occurrences[0].day == date(2026, 10, 19)
    assert len(warnings) == 1


def test_expand_all_puts_schedule_first():
    test = models.Test(id=7, title="Quiz", start_date="2024-09-03T10:00:00")
    occurrences = expander.expand_all(
        [make_slot()], make_year(end_date="2024-09-03"), [test], tz=TZ
    )
    assert [o.id for o in occurrences] == ["schedule-1-2024-09-02", "test-7"]
