from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.exceptions import ResourceNotFoundError, TermStateError, WorkloadBelowMinimumError
from app.core.security import Actor
from app.models.academic_year import AcademicYear, Term
from app.models.assignment import SubjectAssignment
from app.models.teacher import Teacher
from app.models.timetable_period import TimetablePeriod
from app.services.audit import log_activity
from app.services.conflict_service import refresh_conflict_flags
from app.services.scope import SchedulingScope

logger = logging.getLogger(__name__)


def finalize_term(db: Session, scope: SchedulingScope, actor: Actor, term_id: str) -> dict:
    """Lock a term once every teacher meets their minimum load and no conflicts remain."""
    term = db.get(Term, term_id)
    academic_year = db.get(AcademicYear, term.academic_year_id) if term is not None else None
    if term is None or academic_year is None or academic_year.school_id != scope.school_id:
        raise ResourceNotFoundError("Term", term_id)
    if term.is_finalized:
        raise TermStateError(f"Term {term.name} is already finalized", details={"term_id": term.id})

    totals = db.execute(
        select(Teacher, func.sum(SubjectAssignment.weekly_periods))
        .join(SubjectAssignment, SubjectAssignment.teacher_id == Teacher.id)
        .where(
            Teacher.school_id == scope.school_id,
            Teacher.is_active.is_(True),
            SubjectAssignment.term_id == term.id,
            SubjectAssignment.academic_year_id == academic_year.id,
            SubjectAssignment.is_active.is_(True),
        )
        .group_by(Teacher.id)
    ).all()
    underloaded = [
        {"teacher_id": teacher.id, "name": teacher.name, "total": int(total or 0), "min": teacher.min_weekly_lessons}
        for teacher, total in totals
        if int(total or 0) < teacher.min_weekly_lessons
    ]
    if underloaded:
        logger.warning("Term %s not finalized: %s teachers below minimum load", term.id, len(underloaded))
        raise WorkloadBelowMinimumError(
            f"{len(underloaded)} teacher(s) are below their minimum weekly lessons",
            details={"teachers": underloaded},
        )

    refresh_conflict_flags(db, academic_year.id, term.id)
    conflicting = db.execute(
        select(TimetablePeriod.id)
        .join(SubjectAssignment, SubjectAssignment.id == TimetablePeriod.subject_assignment_id)
        .where(
            TimetablePeriod.term_id == term.id,
            TimetablePeriod.has_conflict.is_(True),
            SubjectAssignment.is_active.is_(True),
        )
    ).scalars().all()
    if conflicting:
        db.commit()
        logger.warning("Term %s not finalized: %s conflicting periods", term.id, len(conflicting))
        raise TermStateError(
            "Resolve conflicting timetable periods before finalizing the term",
            details={"conflicting_periods": sorted(conflicting)},
        )

    period_count = db.execute(
        select(func.count(TimetablePeriod.id)).where(
            TimetablePeriod.term_id == term.id,
            TimetablePeriod.is_active.is_(True),
        )
    ).scalar_one()

    term.is_finalized = True
    term.finalized_at = datetime.now(timezone.utc)
    term.finalized_by_id = actor.id
    log_activity(
        db,
        actor=actor,
        school_id=scope.school_id,
        action="term.finalized",
        entity_type="term",
        entity_id=term.id,
        details={"teachers": len(totals), "periods": period_count},
    )
    db.commit()
    db.refresh(term)
    logger.info("Term %s finalized by %s", term.id, actor.id)
    return {
        "term_id": term.id,
        "academic_year_id": academic_year.id,
        "is_finalized": term.is_finalized,
        "finalized_at": term.finalized_at,
        "finalized_by_id": term.finalized_by_id,
        "teacher_count": len(totals),
        "period_count": period_count,
    }
