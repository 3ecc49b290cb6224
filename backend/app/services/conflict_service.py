from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import AppError, DuplicateAssignmentError, SlotConflictError
from app.models.assignment import SubjectAssignment
from app.models.timetable_period import TimetablePeriod

logger = logging.getLogger(__name__)


class SlotAxis(str, Enum):
    teacher = "teacher"
    classroom = "classroom"
    stream = "stream"


AXIS_COLUMNS = {
    SlotAxis.teacher: TimetablePeriod.teacher_id,
    SlotAxis.classroom: TimetablePeriod.classroom_id,
    SlotAxis.stream: TimetablePeriod.stream_id,
}

# Constraint names (PostgreSQL) and column prefixes (SQLite) that identify each axis.
INTEGRITY_AXIS_MARKERS = {
    SlotAxis.teacher: ("teacher_timetable_unique", "timetable_periods.teacher_id"),
    SlotAxis.classroom: ("classroom_timetable_unique", "timetable_periods.classroom_id"),
    SlotAxis.stream: ("stream_timetable_unique", "timetable_periods.stream_id"),
}
ASSIGNMENT_MARKERS = ("uq_assignment_classroom", "uq_assignment_stream", "subject_assignments.")


@dataclass(frozen=True)
class SlotOccupant:
    axis: SlotAxis
    period_id: str
    subject_assignment_id: str
    teacher_id: str

    def to_dict(self) -> dict:
        return {
            "axis": self.axis.value,
            "period_id": self.period_id,
            "subject_assignment_id": self.subject_assignment_id,
            "teacher_id": self.teacher_id,
        }


@dataclass(frozen=True)
class SlotCheck:
    day_of_week: str
    period_number: int
    occupants: tuple[SlotOccupant, ...] = field(default_factory=tuple)

    @property
    def is_free(self) -> bool:
        return not self.occupants

    @property
    def first(self) -> SlotOccupant | None:
        return self.occupants[0] if self.occupants else None

    def as_error(self) -> SlotConflictError:
        occupant = self.first
        return SlotConflictError(
            axis=occupant.axis.value,
            day_of_week=self.day_of_week,
            period_number=self.period_number,
            occupant_period_id=occupant.period_id,
            occupant_assignment_id=occupant.subject_assignment_id,
        )

    def raise_for_conflict(self) -> None:
        if not self.is_free:
            raise self.as_error()

    def to_dict(self) -> dict:
        return {
            "day_of_week": self.day_of_week,
            "period_number": self.period_number,
            "is_free": self.is_free,
            "occupants": [item.to_dict() for item in self.occupants],
        }


def find_occupant(
    db: Session,
    *,
    axis: SlotAxis,
    axis_value: str,
    academic_year_id: str,
    term_id: str,
    day_of_week: str,
    period_number: int,
    exclude_period_id: str | None = None,
) -> TimetablePeriod | None:
    stmt = select(TimetablePeriod).where(
        AXIS_COLUMNS[axis] == axis_value,
        TimetablePeriod.academic_year_id == academic_year_id,
        TimetablePeriod.term_id == term_id,
        TimetablePeriod.day_of_week == day_of_week,
        TimetablePeriod.period_number == period_number,
        TimetablePeriod.is_active.is_(True),
    )
    if exclude_period_id is not None:
        stmt = stmt.where(TimetablePeriod.id != exclude_period_id)
    return db.execute(stmt.limit(1)).scalar_one_or_none()


def check_slot(
    db: Session,
    *,
    teacher_id: str,
    academic_year_id: str,
    term_id: str,
    day_of_week: str,
    period_number: int,
    classroom_id: str | None = None,
    stream_id: str | None = None,
    exclude_period_id: str | None = None,
) -> SlotCheck:
    """Look up active occupants of a slot on the teacher, classroom and stream axes.

    The teacher axis is always checked. Occupants are reported in axis order.
    """
    axes: list[tuple[SlotAxis, str]] = [(SlotAxis.teacher, teacher_id)]
    if classroom_id:
        axes.append((SlotAxis.classroom, classroom_id))
    if stream_id:
        axes.append((SlotAxis.stream, stream_id))

    occupants: list[SlotOccupant] = []
    for axis, axis_value in axes:
        period = find_occupant(
            db,
            axis=axis,
            axis_value=axis_value,
            academic_year_id=academic_year_id,
            term_id=term_id,
            day_of_week=day_of_week,
            period_number=period_number,
            exclude_period_id=exclude_period_id,
        )
        if period is not None:
            occupants.append(
                SlotOccupant(
                    axis=axis,
                    period_id=period.id,
                    subject_assignment_id=period.subject_assignment_id,
                    teacher_id=period.teacher_id,
                )
            )
    return SlotCheck(day_of_week=day_of_week, period_number=period_number, occupants=tuple(occupants))


def _slot_keys(period: TimetablePeriod) -> list[tuple[str, str, str, int]]:
    keys = [("teacher", period.teacher_id, period.day_of_week, period.period_number)]
    if period.classroom_id:
        keys.append(("classroom", period.classroom_id, period.day_of_week, period.period_number))
    if period.stream_id:
        keys.append(("stream", period.stream_id, period.day_of_week, period.period_number))
    return keys


def refresh_conflict_flags(db: Session, academic_year_id: str, term_id: str) -> int:
    """Recompute ``has_conflict`` and ``conflicting_periods`` for one term.

    Periods of inactive assignments are cleared. Returns the number of flagged periods.
    """
    rows = db.execute(
        select(TimetablePeriod, SubjectAssignment.is_active)
        .join(SubjectAssignment, SubjectAssignment.id == TimetablePeriod.subject_assignment_id)
        .where(
            TimetablePeriod.academic_year_id == academic_year_id,
            TimetablePeriod.term_id == term_id,
        )
    ).all()

    live: list[TimetablePeriod] = []
    for period, assignment_active in rows:
        if assignment_active:
            live.append(period)
        else:
            period.has_conflict = False
            period.conflicting_periods = []

    occupancy: dict[tuple[str, str, str, int], list[str]] = defaultdict(list)
    for period in live:
        for key in _slot_keys(period):
            occupancy[key].append(period.id)

    flagged = 0
    for period in live:
        others: set[str] = set()
        for key in _slot_keys(period):
            others.update(item for item in occupancy[key] if item != period.id)
        conflicting = sorted(others)
        period.has_conflict = bool(conflicting)
        period.conflicting_periods = conflicting
        if conflicting:
            flagged += 1
    db.flush()
    if flagged:
        logger.info("Term %s has %s conflicting timetable periods", term_id, flagged)
    return flagged


def classify_integrity_error(
    db: Session,
    exc: IntegrityError,
    *,
    teacher_id: str,
    academic_year_id: str,
    term_id: str,
    slots: list[tuple[str, int]],
    classroom_id: str | None = None,
    stream_id: str | None = None,
) -> AppError:
    """Translate a storage uniqueness violation into the matching domain error.

    Must be called after the failed transaction was rolled back, so the
    occupant that won the race is visible.
    """
    message = str(exc.orig) if exc.orig is not None else str(exc)
    for axis, markers in INTEGRITY_AXIS_MARKERS.items():
        if not any(marker in message for marker in markers):
            continue
        axis_value = {
            SlotAxis.teacher: teacher_id,
            SlotAxis.classroom: classroom_id,
            SlotAxis.stream: stream_id,
        }[axis]
        for day_of_week, period_number in slots:
            occupant = None
            if axis_value:
                occupant = find_occupant(
                    db,
                    axis=axis,
                    axis_value=axis_value,
                    academic_year_id=academic_year_id,
                    term_id=term_id,
                    day_of_week=day_of_week,
                    period_number=period_number,
                )
            if occupant is not None:
                return SlotConflictError(
                    axis=axis.value,
                    day_of_week=day_of_week,
                    period_number=period_number,
                    occupant_period_id=occupant.id,
                    occupant_assignment_id=occupant.subject_assignment_id,
                )
        day_of_week, period_number = slots[0] if slots else ("", 0)
        return SlotConflictError(axis=axis.value, day_of_week=day_of_week, period_number=period_number)

    if any(marker in message for marker in ASSIGNMENT_MARKERS):
        return DuplicateAssignmentError(
            "An assignment for this teacher, subject and target was created concurrently",
            details={"teacher_id": teacher_id, "academic_year_id": academic_year_id, "term_id": term_id},
        )

    logger.error("Unclassified integrity error while committing an assignment: %s", message)
    return AppError("Could not persist the assignment", status_code=500, details={"error": message})
