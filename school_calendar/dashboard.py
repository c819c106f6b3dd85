"""Assemble the dashboard calendar from fetched collections."""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional, Sequence
from zoneinfo import ZoneInfo

from .expander import expand, expand_dated_items
from .grouping import CalendarItem, group
from .models import AcademicYear, Assignment, CustomEvent, ScheduleSlot, Test


def build_calendar(
    slots: Sequence[ScheduleSlot],
    year: Optional[AcademicYear],
    tests: Iterable[Test] = (),
    assignments: Iterable[Assignment] = (),
    events: Iterable[CustomEvent] = (),
    *,
    tz: ZoneInfo,
    today: Optional[date] = None,
    warnings: Optional[List[str]] = None,
) -> List[CalendarItem]:
    """Grouped lessons followed by tests, assignments and custom events."""

    items: List[CalendarItem] = group(
        expand(slots, year, tz=tz, today=today, warnings=warnings)
    )
    items.extend(expand_dated_items(tests, assignments, events, tz=tz, warnings=warnings))
    return items
