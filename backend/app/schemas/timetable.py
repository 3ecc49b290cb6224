from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

DAY_VALUES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
DAY_SHORT_MAP = {value[:3]: value for value in DAY_VALUES}

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def normalize_day(value: str) -> str:
    cleaned = value.strip().capitalize()
    cleaned = DAY_SHORT_MAP.get(cleaned, cleaned)
    if cleaned not in DAY_VALUES:
        raise ValueError(f"Unknown day of week: {value}")
    return cleaned


class SlotIn(BaseModel):
    day_of_week: str
    period_number: int = Field(ge=1, le=16)
    start_time: str | None = None
    end_time: str | None = None

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, value: str) -> str:
        return normalize_day(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str | None) -> str | None:
        if value is None:
            return value
        parse_time_to_minutes(value)
        return value

    @model_validator(mode="after")
    def validate_time_order(self) -> "SlotIn":
        if self.start_time and self.end_time:
            if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
                raise ValueError("End time must be after start time")
        return self

    @property
    def key(self) -> tuple[str, int]:
        return self.day_of_week, self.period_number


class PeriodCreate(SlotIn):
    allow_conflict_override: bool = False


class SlotCheckRequest(SlotIn):
    teacher_id: str = Field(min_length=1, max_length=36)
    academic_year_id: str = Field(min_length=1, max_length=36)
    term_id: str = Field(min_length=1, max_length=36)
    classroom_id: str | None = Field(default=None, max_length=36)
    stream_id: str | None = Field(default=None, max_length=36)
    exclude_period_id: str | None = Field(default=None, max_length=36)


class SlotOccupantOut(BaseModel):
    axis: str
    period_id: str
    subject_assignment_id: str
    teacher_id: str


class SlotCheckOut(BaseModel):
    day_of_week: str
    period_number: int
    is_free: bool
    occupants: list[SlotOccupantOut] = Field(default_factory=list)


class RefreshConflictsRequest(BaseModel):
    academic_year_id: str = Field(min_length=1, max_length=36)
    term_id: str = Field(min_length=1, max_length=36)


class RefreshConflictsOut(BaseModel):
    academic_year_id: str
    term_id: str
    conflicting_periods: int


class TimetablePeriodOut(BaseModel):
    id: str
    teacher_id: str
    subject_assignment_id: str
    classroom_id: str | None = None
    stream_id: str | None = None
    academic_year_id: str
    term_id: str
    day_of_week: str
    period_number: int
    start_time: str | None = None
    end_time: str | None = None
    has_conflict: bool
    conflicting_periods: list[str] = Field(default_factory=list)
    is_active: bool
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
