from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.exceptions import WorkloadExceededError
from app.models.assignment import SubjectAssignment
from app.models.school import Classroom, Stream
from app.models.subject import Subject
from app.models.teacher import Teacher


@dataclass(frozen=True)
class WorkloadProjection:
    teacher_id: str
    current_total: int
    adding: int
    min_lessons: int
    max_lessons: int

    @property
    def proposed_total(self) -> int:
        return self.current_total + self.adding

    @property
    def within_bounds(self) -> bool:
        return self.proposed_total <= self.max_lessons

    @property
    def below_minimum(self) -> bool:
        return self.proposed_total < self.min_lessons

    @property
    def available_capacity(self) -> int:
        return max(0, self.max_lessons - self.proposed_total)

    def as_error(self) -> WorkloadExceededError:
        return WorkloadExceededError(
            current=self.current_total,
            adding=self.adding,
            maximum=self.max_lessons,
            teacher_id=self.teacher_id,
        )

    def raise_if_exceeded(self) -> None:
        if not self.within_bounds:
            raise self.as_error()

    def to_dict(self) -> dict:
        return {
            "teacher_id": self.teacher_id,
            "current_total": self.current_total,
            "adding": self.adding,
            "proposed_total": self.proposed_total,
            "min": self.min_lessons,
            "max": self.max_lessons,
            "within_bounds": self.within_bounds,
            "below_minimum": self.below_minimum,
            "available_capacity": self.available_capacity,
        }


def _active_assignments_query(teacher_id: str, academic_year_id: str, term_id: str):
    return select(SubjectAssignment).where(
        SubjectAssignment.teacher_id == teacher_id,
        SubjectAssignment.academic_year_id == academic_year_id,
        SubjectAssignment.term_id == term_id,
        SubjectAssignment.is_active.is_(True),
    )


def current_load(db: Session, teacher_id: str, academic_year_id: str, term_id: str) -> int:
    total = db.execute(
        select(func.coalesce(func.sum(SubjectAssignment.weekly_periods), 0)).where(
            SubjectAssignment.teacher_id == teacher_id,
            SubjectAssignment.academic_year_id == academic_year_id,
            SubjectAssignment.term_id == term_id,
            SubjectAssignment.is_active.is_(True),
        )
    ).scalar_one()
    return int(total or 0)


def projected_load(
    db: Session,
    teacher: Teacher,
    academic_year_id: str,
    term_id: str,
    additional_periods: int = 0,
) -> WorkloadProjection:
    """Read-only projection of the teacher's weekly load after ``additional_periods``."""
    return WorkloadProjection(
        teacher_id=teacher.id,
        current_total=current_load(db, teacher.id, academic_year_id, term_id),
        adding=additional_periods,
        min_lessons=teacher.min_weekly_lessons,
        max_lessons=teacher.max_weekly_lessons,
    )


def workload_status(total: int, min_lessons: int, max_lessons: int) -> str:
    if total > max_lessons:
        return "overloaded"
    if total < min_lessons:
        return "underloaded"
    return "optimal"


def workload_report(db: Session, teacher: Teacher, academic_year_id: str, term_id: str) -> dict:
    rows = db.execute(
        _active_assignments_query(teacher.id, academic_year_id, term_id).order_by(SubjectAssignment.created_at)
    ).scalars().all()
    subject_names = {
        item.id: item.name
        for item in db.execute(
            select(Subject).where(Subject.id.in_({row.subject_id for row in rows}))
        ).scalars()
    } if rows else {}
    classroom_names = {
        item.id: item.name
        for item in db.execute(
            select(Classroom).where(Classroom.id.in_({row.classroom_id for row in rows if row.classroom_id}))
        ).scalars()
    } if rows else {}
    stream_names = {
        item.id: item.name
        for item in db.execute(
            select(Stream).where(Stream.id.in_({row.stream_id for row in rows if row.stream_id}))
        ).scalars()
    } if rows else {}

    total = sum(row.weekly_periods for row in rows)
    max_lessons = teacher.max_weekly_lessons
    min_lessons = teacher.min_weekly_lessons
    return {
        "teacher_id": teacher.id,
        "academic_year_id": academic_year_id,
        "term_id": term_id,
        "total": total,
        "min": min_lessons,
        "max": max_lessons,
        "within_bounds": total <= max_lessons,
        "status": workload_status(total, min_lessons, max_lessons),
        "available_capacity": max(0, max_lessons - total),
        "percentage_used": round(total / max_lessons * 100, 1) if max_lessons > 0 else 0.0,
        "subject_count": len({row.subject_id for row in rows}),
        "assignment_count": len(rows),
        "assignments": [
            {
                "assignment_id": row.id,
                "subject_id": row.subject_id,
                "subject": subject_names.get(row.subject_id, "Unknown"),
                "target": classroom_names.get(row.classroom_id) or stream_names.get(row.stream_id) or "Unknown",
                "weekly_periods": row.weekly_periods,
                "assignment_type": row.assignment_type.value,
            }
            for row in rows
        ],
    }
