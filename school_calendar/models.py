"""Data models for calendar inputs and occurrences."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

T = TypeVar("T")


class Category(str, Enum):
    SCHEDULE = "schedule"
    TEST = "test"
    ASSIGNMENT = "assignment"
    MEETING = "meeting"
    GATHERING = "gathering"
    SCHOOL_EVENT = "school_event"
    OTHER = "other"


@dataclass
class ScheduleSlot:
    id: int
    subject_group: int
    day_of_week: int  # 0=Monday .. 6=Sunday
    start_time: str  # HH:MM[:SS]
    end_time: str
    room: Optional[str] = None
    start_date: Optional[str] = None  # ISO date string
    end_date: Optional[str] = None
    quarter: Optional[int] = None
    subject_group_course_name: Optional[str] = None
    subject_group_classroom_display: Optional[str] = None
    subject_group_teacher_fullname: Optional[str] = None
    subject_group_teacher_username: Optional[str] = None


@dataclass
class AcademicYear:
    id: int
    start_date: str
    end_date: str
    name: Optional[str] = None
    quarter1_weeks: Optional[int] = None
    quarter2_weeks: Optional[int] = None
    quarter3_weeks: Optional[int] = None
    quarter4_weeks: Optional[int] = None
    autumn_holiday_start: Optional[str] = None
    autumn_holiday_end: Optional[str] = None
    winter_holiday_start: Optional[str] = None
    winter_holiday_end: Optional[str] = None
    spring_holiday_start: Optional[str] = None
    spring_holiday_end: Optional[str] = None
    is_active: Optional[bool] = None


@dataclass
class Test:
    id: int
    title: str
    start_date: str  # ISO instant
    end_date: Optional[str] = None
    course_name: str = ""
    teacher_username: str = ""
    description: Optional[str] = None


@dataclass
class Assignment:
    id: int
    title: str
    due_at: str
    course_name: str = ""
    teacher_username: str = ""
    description: Optional[str] = None


@dataclass
class TargetUser:
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


@dataclass
class CustomEvent:
    id: int
    title: str
    type: str
    start_at: str
    end_at: Optional[str] = None
    is_all_day: bool = False
    description: Optional[str] = None
    location: Optional[str] = None
    target_audience: str = ""
    school: Optional[int] = None
    subject_group: Optional[int] = None
    subject_group_display: Optional[str] = None
    target_users: List[int] = field(default_factory=list)
    target_users_details: List[TargetUser] = field(default_factory=list)
    created_by: Optional[int] = None


@dataclass
class Occurrence:
    id: str
    title: str
    start: datetime
    end: datetime
    category: str
    source_id: int
    day: Optional[date] = None  # set for schedule occurrences
    subject: str = ""
    classroom: str = ""
    room: Optional[str] = None
    teacher: str = ""
    teacher_full_name: str = ""
    time: str = ""
    description: str = ""
    location: Optional[str] = None
    category_label: str = ""
    target_audience: Optional[str] = None
    subject_group_display: Optional[str] = None
    target_users: List[TargetUser] = field(default_factory=list)


@dataclass
class GroupedOccurrence:
    id: str
    title: str
    start: datetime
    end: datetime
    category: str
    members: List[Occurrence] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.members)


@dataclass
class DisplayOccurrence:
    id: str
    title: str
    start: str  # ISO date of the displayed day
    subject: str
    teacher: str
    time: str
    description: str
    type: str
    classroom: Optional[str] = None
    room: Optional[str] = None
    target_audience: Optional[str] = None
    subject_group_display: Optional[str] = None
    target_users: List[TargetUser] = field(default_factory=list)


def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
    """Build ``cls`` from an API payload, dropping keys it does not declare."""

    names = {f.name for f in dataclasses.fields(cls)}
    kwargs = {k: v for k, v in data.items() if k in names}
    if cls is CustomEvent and kwargs.get("target_users_details"):
        kwargs["target_users_details"] = [
            from_dict(TargetUser, u) if isinstance(u, dict) else u
            for u in kwargs["target_users_details"]
        ]
    return cls(**kwargs)
