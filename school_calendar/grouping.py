"""Grouping of overlapping lesson occurrences and the per-day agenda."""

from __future__ import annotations

import re
from datetime import date
from typing import Iterable, List, Sequence, Set, Union

from .models import Category, DisplayOccurrence, GroupedOccurrence, Occurrence

CalendarItem = Union[Occurrence, GroupedOccurrence]

DAY_TITLES = {
    Category.SCHEDULE.value: "Урок",
    Category.TEST.value: "Тест",
    Category.ASSIGNMENT.value: "Домашнее Задание",
}

_SECONDS = re.compile(r"(\d{2}:\d{2}):\d{2}")


def _overlaps(a: Occurrence, b: Occurrence) -> bool:
    if not (a.category == b.category == Category.SCHEDULE.value):
        return False
    if a.start.date() != b.start.date():
        return False
    # identical windows are listed separately from the strict overlap test
    return (a.start < b.end and a.end > b.start) or (
        a.start == b.start and a.end == b.end
    )


def group_title(count: int) -> str:
    return f"{count} урока"


def group(occurrences: Sequence[Occurrence]) -> List[CalendarItem]:
    """Collapse same-day overlapping lessons into grouped occurrences.

    Membership is decided against the first occurrence of each cluster, not
    pairwise: with ``a`` overlapping ``b`` and ``b`` overlapping ``c`` but not
    ``a``, ``c`` is left out of the cluster of ``a``.
    """

    grouped: List[CalendarItem] = []
    processed: Set[str] = set()

    for i, anchor in enumerate(occurrences):
        if anchor.id in processed:
            continue
        cluster = [anchor]
        for other in occurrences[i + 1 :]:
            if other.id in processed:
                continue
            if _overlaps(anchor, other):
                cluster.append(other)
                processed.add(other.id)

        processed.add(anchor.id)
        if len(cluster) > 1:
            grouped.append(
                GroupedOccurrence(
                    id=f"grouped-{anchor.id}",
                    title=group_title(len(cluster)),
                    start=min(o.start for o in cluster),
                    end=max(o.end for o in cluster),
                    category=anchor.category,
                    members=cluster,
                )
            )
        else:
            grouped.append(anchor)

    return grouped


def flatten(items: Iterable[CalendarItem]) -> List[Occurrence]:
    flat: List[Occurrence] = []
    for item in items:
        if isinstance(item, GroupedOccurrence):
            flat.extend(item.members)
        else:
            flat.append(item)
    return flat


def _display(occurrence: Occurrence, day: date) -> DisplayOccurrence:
    time_label = occurrence.time or occurrence.start.strftime("%H:%M")
    return DisplayOccurrence(
        id=occurrence.id,
        title=DAY_TITLES.get(occurrence.category, occurrence.title),
        start=day.isoformat(),
        subject=occurrence.subject,
        teacher=occurrence.teacher_full_name or occurrence.teacher,
        time=_SECONDS.sub(r"\1", time_label),
        description=occurrence.description,
        type=occurrence.category,
        classroom=occurrence.classroom or None,
        room=occurrence.room,
        target_audience=occurrence.target_audience,
        subject_group_display=occurrence.subject_group_display,
        target_users=list(occurrence.target_users),
    )


def _time_key(row: DisplayOccurrence) -> str:
    return row.time.replace(":", "", 1) if row.time else "0000"


def occurrences_for_day(day: date, items: Iterable[CalendarItem]) -> List[DisplayOccurrence]:
    """Rows for a day sidebar: items starting on ``day``, groups expanded."""

    rows: List[DisplayOccurrence] = []
    for item in items:
        if item.start.date() != day:
            continue
        members = item.members if isinstance(item, GroupedOccurrence) else [item]
        for member in members:
            if member.start.date() == day:
                rows.append(_display(member, day))
    rows.sort(key=_time_key)
    return rows
