"""Expansion of schedule slots and dated items into calendar occurrences."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from . import util
from .models import (
    AcademicYear,
    Assignment,
    Category,
    CustomEvent,
    Occurrence,
    ScheduleSlot,
    Test,
)

logger = logging.getLogger(__name__)

DEFAULT_QUARTER_WEEKS = (8, 8, 10, 8)
FALLBACK_MONTHS = 3
DEFAULT_DURATION = timedelta(hours=1)
HOLIDAYS = ("autumn", "winter", "spring")
EVENT_LABELS = {
    Category.MEETING.value: "Собрание",
    Category.GATHERING.value: "Встреча",
    Category.SCHOOL_EVENT.value: "Школьное событие",
    Category.OTHER.value: "Другое",
}

DateRange = Tuple[date, date]


def _parse_date(s: str) -> date:
    return datetime.fromisoformat(s.replace("Z", "")).date()


def _parse_time(s: str) -> time:
    return time.fromisoformat(s)


def _parse_instant(s: str, tz: ZoneInfo) -> datetime:
    """Parse an ISO instant; naive values are taken as wall-clock time in ``tz``."""

    dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def _plus_default(instant: datetime, tz: ZoneInfo) -> datetime:
    """One elapsed hour later, independent of DST transitions in ``tz``."""

    return (instant.astimezone(timezone.utc) + DEFAULT_DURATION).astimezone(tz)


def _hhmm(value: time | datetime) -> str:
    return value.strftime("%H:%M")


def _last_name(full_name: str) -> str:
    parts = full_name.split()
    return parts[-1] if parts else full_name


def _warn(warnings: Optional[List[str]], message: str, *args) -> None:
    text = message % args
    logger.warning(text)
    if warnings is not None:
        warnings.append(text)


def monday_of(day: date) -> date:
    # Sunday belongs to the week that started six days earlier
    offset = -6 if day.isoweekday() == 7 else 1 - day.isoweekday()
    return day + timedelta(days=offset)


def fallback_window(today: date) -> DateRange:
    start = monday_of(today)
    return start, start + relativedelta(months=FALLBACK_MONTHS)


def year_window(
    year: AcademicYear, warnings: Optional[List[str]] = None
) -> Optional[DateRange]:
    try:
        return _parse_date(year.start_date), _parse_date(year.end_date)
    except (TypeError, ValueError, AttributeError):
        _warn(
            warnings,
            "Academic year %s has invalid bounds %r..%r, using fallback window",
            year.id,
            year.start_date,
            year.end_date,
        )
        return None


def holiday_ranges(
    year: AcademicYear, warnings: Optional[List[str]] = None
) -> List[DateRange]:
    ranges: List[DateRange] = []
    for season in HOLIDAYS:
        start = getattr(year, f"{season}_holiday_start")
        end = getattr(year, f"{season}_holiday_end")
        if not (start and end):
            continue
        try:
            ranges.append((_parse_date(start), _parse_date(end)))
        except ValueError:
            _warn(warnings, "Ignoring invalid %s holiday %r..%r", season, start, end)
    return ranges


def quarter_ranges(year: AcademicYear) -> List[DateRange]:
    """Contiguous quarter date ranges walked forward from the year start."""

    weeks = [
        getattr(year, f"quarter{n}_weeks") or default
        for n, default in enumerate(DEFAULT_QUARTER_WEEKS, start=1)
    ]
    ranges: List[DateRange] = []
    current = _parse_date(year.start_date)
    for count in weeks:
        end = current + timedelta(days=count * 7 - 1)
        ranges.append((current, end))
        current = end + timedelta(days=1)
    return ranges


def quarter_for_date(day: date, quarters: Sequence[DateRange]) -> Optional[int]:
    for number, (start, end) in enumerate(quarters, start=1):
        if start <= day <= end:
            return number
    return None


def _in_ranges(day: date, ranges: Iterable[DateRange]) -> bool:
    return any(start <= day <= end for start, end in ranges)


def _prepare_slot(slot: ScheduleSlot, warnings: Optional[List[str]]) -> Optional[dict]:
    try:
        day_of_week = int(slot.day_of_week)
        start_time = _parse_time(slot.start_time)
        end_time = _parse_time(slot.end_time)
        start_date = _parse_date(slot.start_date) if slot.start_date else None
        end_date = _parse_date(slot.end_date) if slot.end_date else None
    except (TypeError, ValueError) as exc:
        _warn(warnings, "Skipping schedule slot %s: %s", slot.id, exc)
        return None
    if not 0 <= day_of_week <= 6:
        _warn(warnings, "Skipping schedule slot %s: day_of_week %r", slot.id, day_of_week)
        return None
    if start_time >= end_time:
        _warn(
            warnings,
            "Skipping schedule slot %s: start %s is not before end %s",
            slot.id,
            slot.start_time,
            slot.end_time,
        )
        return None
    return {
        "slot": slot,
        "day_of_week": day_of_week,
        "start_time": start_time,
        "end_time": end_time,
        "start_date": start_date,
        "end_date": end_date,
    }


def _schedule_occurrence(prepared: dict, day: date, tz: ZoneInfo) -> Occurrence:
    slot: ScheduleSlot = prepared["slot"]
    subject = slot.subject_group_course_name or "Предмет"
    classroom = slot.subject_group_classroom_display or ""
    teacher_full_name = (
        slot.subject_group_teacher_fullname or slot.subject_group_teacher_username or ""
    ).strip()
    room_text = f"Каб. {slot.room}" if slot.room else ""
    return Occurrence(
        id=f"schedule-{slot.id}-{day.isoformat()}",
        title=" • ".join(filter(None, [subject, classroom, room_text])),
        start=datetime.combine(day, prepared["start_time"], tz),
        end=datetime.combine(day, prepared["end_time"], tz),
        category=Category.SCHEDULE.value,
        source_id=slot.id,
        day=day,
        subject=subject,
        classroom=classroom,
        room=slot.room,
        teacher=_last_name(teacher_full_name),
        teacher_full_name=teacher_full_name,
        time=f"{_hhmm(prepared['start_time'])} - {_hhmm(prepared['end_time'])}",
        description=classroom,
    )


def expand(
    slots: Sequence[ScheduleSlot],
    year: Optional[AcademicYear],
    *,
    tz: ZoneInfo,
    today: Optional[date] = None,
    warnings: Optional[List[str]] = None,
) -> List[Occurrence]:
    """Expand weekly schedule slots into dated lesson occurrences.

    The window is the academic year when one is given, otherwise the Monday of
    the current week plus three months. Holidays and quarter restrictions only
    apply with a year; weekends are never skipped.
    """

    if not slots:
        return []

    window = year_window(year, warnings) if year is not None else None
    if window is None:
        year = None
        window = fallback_window(today or util.today())
    holidays = holiday_ranges(year, warnings) if year is not None else []
    quarters = quarter_ranges(year) if year is not None else []

    by_day: Dict[int, List[dict]] = {}
    for slot in slots:
        prepared = _prepare_slot(slot, warnings)
        if prepared is not None:
            by_day.setdefault(prepared["day_of_week"], []).append(prepared)

    occurrences: List[Occurrence] = []
    day, last = window
    while day <= last:
        for prepared in by_day.get(day.weekday(), []):
            if _in_ranges(day, holidays):
                continue
            quarter = prepared["slot"].quarter
            if quarter and year is not None:
                if quarter_for_date(day, quarters) != quarter:
                    continue
            if prepared["start_date"] and day < prepared["start_date"]:
                continue
            if prepared["end_date"] and day > prepared["end_date"]:
                continue
            occurrences.append(_schedule_occurrence(prepared, day, tz))
        day += timedelta(days=1)

    logger.debug(
        "Expanded %d slots into %d occurrences between %s and %s",
        len(slots),
        len(occurrences),
        window[0],
        window[1],
    )
    return occurrences


def _test_occurrences(test: Test, tz: ZoneInfo) -> List[Occurrence]:
    start = _parse_instant(test.start_date, tz)
    end = _parse_instant(test.end_date, tz) if test.end_date else _plus_default(start, tz)
    common = dict(
        category=Category.TEST.value,
        source_id=test.id,
        subject=test.course_name,
        teacher=test.teacher_username,
        description=test.description or "",
    )
    if start.date() == end.date():
        return [
            Occurrence(
                id=f"test-{test.id}",
                title=f"Тест: {test.title}",
                start=start,
                end=end,
                time=_hhmm(start),
                **common,
            )
        ]
    return [
        Occurrence(
            id=f"test-start-{test.id}",
            title=f"Начало теста: {test.title}",
            start=start,
            end=_plus_default(start, tz),
            time=_hhmm(start),
            **common,
        ),
        Occurrence(
            id=f"test-end-{test.id}",
            title=f"Конец теста: {test.title}",
            start=end,
            end=_plus_default(end, tz),
            time=_hhmm(end),
            **common,
        ),
    ]


def _assignment_occurrence(assignment: Assignment, tz: ZoneInfo) -> Occurrence:
    due = _parse_instant(assignment.due_at, tz)
    return Occurrence(
        id=f"assignment-{assignment.id}",
        title=assignment.title,
        start=due,
        end=_plus_default(due, tz),
        category=Category.ASSIGNMENT.value,
        source_id=assignment.id,
        subject=assignment.course_name,
        teacher=assignment.teacher_username,
        time=_hhmm(due),
        description=assignment.description or "",
    )


def _event_occurrence(
    event: CustomEvent, tz: ZoneInfo, warnings: Optional[List[str]]
) -> Occurrence:
    start = _parse_instant(event.start_at, tz)
    end = _parse_instant(event.end_at, tz) if event.end_at else _plus_default(start, tz)
    category = event.type
    label = EVENT_LABELS.get(category, event.type)
    if category not in EVENT_LABELS:
        _warn(warnings, "Event %s has unknown type %r, shown as other", event.id, event.type)
        category = Category.OTHER.value
    return Occurrence(
        id=f"event-{event.id}",
        title=event.title,
        start=start,
        end=end,
        category=category,
        source_id=event.id,
        subject=event.title,
        time=_hhmm(start),
        description=event.description or "",
        location=event.location,
        category_label=label,
        target_audience=event.target_audience,
        subject_group_display=event.subject_group_display,
        target_users=list(event.target_users_details or []),
    )


def expand_dated_items(
    tests: Iterable[Test] = (),
    assignments: Iterable[Assignment] = (),
    events: Iterable[CustomEvent] = (),
    *,
    tz: ZoneInfo,
    warnings: Optional[List[str]] = None,
) -> List[Occurrence]:
    """Map tests, assignments and custom events to occurrences, in that order."""

    occurrences: List[Occurrence] = []
    for test in tests:
        try:
            occurrences.extend(_test_occurrences(test, tz))
        except (TypeError, ValueError, AttributeError) as exc:
            _warn(warnings, "Skipping test %s: %s", test.id, exc)
    for assignment in assignments:
        try:
            occurrences.append(_assignment_occurrence(assignment, tz))
        except (TypeError, ValueError, AttributeError) as exc:
            _warn(warnings, "Skipping assignment %s: %s", assignment.id, exc)
    for event in events:
        try:
            occurrences.append(_event_occurrence(event, tz, warnings))
        except (TypeError, ValueError, AttributeError) as exc:
            _warn(warnings, "Skipping event %s: %s", event.id, exc)
    return occurrences


def expand_all(
    slots: Sequence[ScheduleSlot],
    year: Optional[AcademicYear],
    tests: Iterable[Test] = (),
    assignments: Iterable[Assignment] = (),
    events: Iterable[CustomEvent] = (),
    *,
    tz: ZoneInfo,
    today: Optional[date] = None,
    warnings: Optional[List[str]] = None,
) -> List[Occurrence]:
    occurrences = expand(slots, year, tz=tz, today=today, warnings=warnings)
    occurrences.extend(
        expand_dated_items(tests, assignments, events, tz=tz, warnings=warnings)
    )
    return occurrences
