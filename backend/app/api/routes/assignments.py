from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import ANY_ROLE, SCHEDULERS, get_db, get_scope, require_roles
from app.core.security import Actor
from app.models.assignment import SubjectAssignment
from app.schemas.assignment import (
    AssignmentCreatedOut,
    AssignmentOut,
    AssignmentRequest,
    BatchAssignmentRequest,
    BatchItemOutcome,
    BatchResultOut,
    DeactivateRequest,
    DecisionOut,
)
from app.schemas.timetable import PeriodCreate, TimetablePeriodOut
from app.services.assignment_validator import AssignmentValidator, list_assignments, periods_for_assignment
from app.services.scope import SchedulingScope, get_school_resource

router = APIRouter()


@router.post("/validate", response_model=DecisionOut)
def validate_assignment(
    payload: AssignmentRequest,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
) -> DecisionOut:
    decision = AssignmentValidator(db, scope, current_actor).validate(payload)
    return DecisionOut.model_validate(decision.to_dict())


@router.post("", response_model=AssignmentCreatedOut, status_code=status.HTTP_201_CREATED)
def create_assignment(
    payload: AssignmentRequest,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
) -> AssignmentCreatedOut:
    outcome = AssignmentValidator(db, scope, current_actor).create(payload)
    return AssignmentCreatedOut(
        assignment=AssignmentOut.model_validate(outcome.assignment),
        periods=[TimetablePeriodOut.model_validate(item) for item in outcome.periods],
        reactivated=outcome.reactivated,
        decision=DecisionOut.model_validate(outcome.decision.to_dict()),
    )


@router.post("/batch", response_model=BatchResultOut)
def create_assignment_batch(
    payload: BatchAssignmentRequest,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
) -> BatchResultOut:
    result = AssignmentValidator(db, scope, current_actor).create_batch(payload.items, atomic=payload.atomic)
    return BatchResultOut(
        atomic=result.atomic,
        committed=result.committed,
        batch_id=result.batch_id,
        created_count=result.created_count,
        failed_count=result.failed_count,
        outcomes=[
            BatchItemOutcome(
                index=item.index,
                status=item.status,
                assignment=AssignmentOut.model_validate(item.assignment) if item.assignment is not None else None,
                error=item.error,
                warnings=item.warnings,
            )
            for item in result.outcomes
        ],
    )


@router.get("", response_model=list[AssignmentOut])
def get_assignments(
    teacher_id: str | None = Query(default=None, max_length=36),
    subject_id: str | None = Query(default=None, max_length=36),
    academic_year_id: str | None = Query(default=None, max_length=36),
    term_id: str | None = Query(default=None, max_length=36),
    target_id: str | None = Query(default=None, max_length=36),
    is_active: bool | None = Query(default=None),
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> list[AssignmentOut]:
    rows = list_assignments(
        db,
        scope,
        teacher_id=teacher_id,
        subject_id=subject_id,
        academic_year_id=academic_year_id,
        term_id=term_id,
        target_id=target_id,
        is_active=is_active,
    )
    return [AssignmentOut.model_validate(item) for item in rows]


@router.get("/{assignment_id}/periods", response_model=list[TimetablePeriodOut])
def get_assignment_periods(
    assignment_id: str,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> list[TimetablePeriodOut]:
    get_school_resource(db, scope, SubjectAssignment, assignment_id, "SubjectAssignment")
    return [TimetablePeriodOut.model_validate(item) for item in periods_for_assignment(db, assignment_id)]


@router.post("/{assignment_id}/deactivate", response_model=AssignmentOut)
def deactivate_assignment(
    assignment_id: str,
    payload: DeactivateRequest | None = None,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
) -> AssignmentOut:
    reason = payload.reason if payload is not None else None
    assignment = AssignmentValidator(db, scope, current_actor).deactivate(assignment_id, reason=reason)
    return AssignmentOut.model_validate(assignment)


@router.post(
    "/{assignment_id}/periods",
    response_model=TimetablePeriodOut,
    status_code=status.HTTP_201_CREATED,
)
def schedule_assignment_period(
    assignment_id: str,
    payload: PeriodCreate,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
) -> TimetablePeriodOut:
    period = AssignmentValidator(db, scope, current_actor).schedule_period(assignment_id, payload)
    return TimetablePeriodOut.model_validate(period)
