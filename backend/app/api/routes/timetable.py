from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.api.deps import ANY_ROLE, SCHEDULERS, get_db, get_scope, require_roles
from app.core.security import Actor
from app.models.teacher import Teacher
from app.schemas.timetable import (
    RefreshConflictsOut,
    RefreshConflictsRequest,
    SlotCheckOut,
    SlotCheckRequest,
    TimetablePeriodOut,
)
from app.services.assignment_validator import AssignmentValidator
from app.services.conflict_service import check_slot, refresh_conflict_flags
from app.services.scope import SchedulingScope, get_school_resource, resolve_term

router = APIRouter()


@router.post("/slot-check", response_model=SlotCheckOut)
def slot_check(
    payload: SlotCheckRequest,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> SlotCheckOut:
    get_school_resource(db, scope, Teacher, payload.teacher_id, "Teacher")
    resolve_term(db, scope, payload.academic_year_id, payload.term_id)
    result = check_slot(
        db,
        teacher_id=payload.teacher_id,
        academic_year_id=payload.academic_year_id,
        term_id=payload.term_id,
        day_of_week=payload.day_of_week,
        period_number=payload.period_number,
        classroom_id=payload.classroom_id,
        stream_id=payload.stream_id,
        exclude_period_id=payload.exclude_period_id,
    )
    return SlotCheckOut.model_validate(result.to_dict())


@router.post("/refresh-conflicts", response_model=RefreshConflictsOut)
def refresh_conflicts(
    payload: RefreshConflictsRequest,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
) -> RefreshConflictsOut:
    academic_year, term = resolve_term(db, scope, payload.academic_year_id, payload.term_id)
    flagged = refresh_conflict_flags(db, academic_year.id, term.id)
    db.commit()
    return RefreshConflictsOut(academic_year_id=academic_year.id, term_id=term.id, conflicting_periods=flagged)


@router.post("/periods/{period_id}/activate", response_model=TimetablePeriodOut)
def activate_period(
    period_id: str,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
) -> TimetablePeriodOut:
    period = AssignmentValidator(db, scope, current_actor).activate_period(period_id)
    return TimetablePeriodOut.model_validate(period)


@router.delete("/periods/{period_id}", status_code=status.HTTP_204_NO_CONTENT)
def discard_period(
    period_id: str,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
) -> Response:
    AssignmentValidator(db, scope, current_actor).discard_period(period_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
