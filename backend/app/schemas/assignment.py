from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from app.models.assignment import AssignmentType
from app.schemas.timetable import SlotIn, TimetablePeriodOut


class AssignmentRequest(BaseModel):
    teacher_id: str = Field(min_length=1, max_length=36)
    subject_id: str = Field(min_length=1, max_length=36)
    academic_year_id: str = Field(min_length=1, max_length=36)
    term_id: str = Field(min_length=1, max_length=36)
    classroom_id: str | None = Field(default=None, max_length=36)
    stream_id: str | None = Field(default=None, max_length=36)
    weekly_periods: int | None = Field(default=None, ge=1, le=40)
    assignment_type: AssignmentType = AssignmentType.main_teacher
    notes: str | None = Field(default=None, max_length=1000)
    slots: list[SlotIn] = Field(default_factory=list, max_length=40)

    @model_validator(mode="after")
    def validate_target_and_slots(self) -> "AssignmentRequest":
        if bool(self.classroom_id) == bool(self.stream_id):
            raise ValueError("Exactly one of classroom_id or stream_id is required")
        keys = [slot.key for slot in self.slots]
        if len(keys) != len(set(keys)):
            raise ValueError("Slots must not repeat the same day and period")
        if self.weekly_periods is not None and len(self.slots) > self.weekly_periods:
            raise ValueError("More slots than weekly periods")
        return self


class BatchAssignmentRequest(BaseModel):
    atomic: bool = False
    items: list[AssignmentRequest] = Field(min_length=1)


class DeactivateRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class AssignmentOut(BaseModel):
    id: str
    school_id: str
    teacher_id: str
    subject_id: str
    academic_year_id: str
    term_id: str
    classroom_id: str | None = None
    stream_id: str | None = None
    weekly_periods: int
    assignment_type: AssignmentType
    is_active: bool
    notes: str | None = None
    batch_id: str | None = None
    is_bulk_assignment: bool
    created_by_id: str | None = None
    deactivated_at: datetime | None = None
    deactivated_by_id: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class DecisionOut(BaseModel):
    allowed: bool
    stage: str
    rejected_at: str | None = None
    error: dict | None = None
    qualification: dict | None = None
    workload: dict | None = None
    warnings: list[dict] = Field(default_factory=list)
    slots: list[dict] = Field(default_factory=list)


class AssignmentCreatedOut(BaseModel):
    assignment: AssignmentOut
    periods: list[TimetablePeriodOut] = Field(default_factory=list)
    reactivated: bool = False
    decision: DecisionOut


class BatchItemOutcome(BaseModel):
    index: int
    status: Literal["created", "rejected", "rolled_back", "skipped"]
    assignment: AssignmentOut | None = None
    error: dict | None = None
    warnings: list[dict] = Field(default_factory=list)


class BatchResultOut(BaseModel):
    atomic: bool
    committed: bool
    batch_id: str
    created_count: int
    failed_count: int
    outcomes: list[BatchItemOutcome]
