"""ICS calendar builder."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

from .grouping import CalendarItem, flatten
from .models import AcademicYear, Occurrence

PRODID = "-//School Calendar//EN"


def _format(dt: datetime) -> str:
    """Format a datetime in UTC with trailing Z."""
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _format_local(dt: datetime) -> str:
    """Format a datetime in local time without timezone suffix."""
    return dt.strftime("%Y%m%dT%H%M%S")


def _escape_text(value: str) -> str:
    """Escape text for RFC5545 TEXT value."""

    normalized = value.replace("\r\n", "\n").replace("\r", "\n")
    escaped = normalized.replace("\\", "\\\\")
    escaped = escaped.replace("\n", "\\n")
    escaped = escaped.replace(",", "\\,")
    escaped = escaped.replace(";", "\\;")
    return escaped


def _fold_line(line: str, limit: int = 75) -> List[str]:
    """Fold a line according to RFC5545 (75 octets)."""

    if len(line.encode("utf-8")) <= limit:
        return [line]

    folded: List[str] = []
    current_chars: List[str] = []
    current_bytes = 0

    for ch in line:
        ch_bytes = len(ch.encode("utf-8"))
        if current_bytes + ch_bytes > limit:
            folded.append("".join(current_chars))
            current_chars = [" "]
            current_bytes = 1
        current_chars.append(ch)
        current_bytes += ch_bytes

    folded.append("".join(current_chars))
    return folded


def _uid(occurrence: Occurrence) -> str:
    return hashlib.sha1(occurrence.id.encode()).hexdigest() + "@school-calendar"


def _description(occurrence: Occurrence) -> str:
    parts = [
        occurrence.subject if occurrence.subject != occurrence.title else "",
        occurrence.teacher_full_name or occurrence.teacher,
        occurrence.description if occurrence.description != occurrence.classroom else "",
        occurrence.classroom,
        occurrence.category_label,
    ]
    return "\n".join(filter(None, parts))


def event_lines(occurrence: Occurrence, *, tz: ZoneInfo, stamp: datetime) -> List[str]:
    start = occurrence.start.astimezone(tz)
    end = occurrence.end.astimezone(tz)
    location = occurrence.location or (f"Каб. {occurrence.room}" if occurrence.room else "")
    lines = [
        "BEGIN:VEVENT",
        f"UID:{_uid(occurrence)}",
        f"DTSTAMP:{_format(stamp)}",
        f"SUMMARY:{_escape_text(occurrence.title)}",
        f"DTSTART;TZID={tz.key}:{_format_local(start)}",
        f"DTEND;TZID={tz.key}:{_format_local(end)}",
    ]
    if location:
        lines.append(f"LOCATION:{_escape_text(location)}")
    description = _description(occurrence)
    if description:
        lines.append(f"DESCRIPTION:{_escape_text(description)}")
    lines.append(f"CATEGORIES:{_escape_text(occurrence.category)}")
    lines.append("STATUS:CONFIRMED")
    lines.append("END:VEVENT")
    return lines


def build_ics(
    items: Iterable[CalendarItem],
    *,
    tz: ZoneInfo,
    now: Optional[datetime] = None,
) -> str:
    """Serialise calendar items, one VEVENT per member occurrence."""

    stamp = now or datetime.now(timezone.utc)
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        f"X-WR-TIMEZONE:{tz.key}",
    ]
    for occurrence in flatten(items):
        lines.extend(event_lines(occurrence, tz=tz, stamp=stamp))
    lines.append("END:VCALENDAR")

    folded_lines: List[str] = []
    for line in lines:
        folded_lines.extend(_fold_line(line))
    return "\r\n".join(folded_lines) + "\r\n"


def output_filename(year: Optional[AcademicYear]) -> str:
    if year is None:
        return "school_calendar.ics"
    label = year.name or f"{year.start_date}_{year.end_date}"
    return f"school_calendar_{label.replace('/', '-').replace(' ', '_')}.ics"
