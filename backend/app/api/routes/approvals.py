from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import ADMIN_ONLY, ANY_ROLE, SCHEDULERS, get_db, get_scope, require_roles
from app.core.security import Actor
from app.models.approval import ApprovalStatus
from app.schemas.approval import DerivedSubjectApprovalOut, DerivedSubjectRequest
from app.services.approvals import approve_derived_subject, list_approvals, request_derived_approval
from app.services.scope import SchedulingScope

router = APIRouter()


@router.get("/derived-subjects", response_model=list[DerivedSubjectApprovalOut])
def get_derived_subject_approvals(
    status_filter: ApprovalStatus | None = Query(default=None, alias="status"),
    teacher_id: str | None = Query(default=None, max_length=36),
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> list[DerivedSubjectApprovalOut]:
    rows = list_approvals(db, scope, status=status_filter, teacher_id=teacher_id)
    return [DerivedSubjectApprovalOut.model_validate(item) for item in rows]


@router.post(
    "/derived-subjects",
    response_model=DerivedSubjectApprovalOut,
    status_code=status.HTTP_201_CREATED,
)
def request_derived_subject(
    payload: DerivedSubjectRequest,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
) -> DerivedSubjectApprovalOut:
    record = request_derived_approval(
        db,
        scope,
        current_actor,
        teacher_id=payload.teacher_id,
        subject_id=payload.subject_id,
        note=payload.note,
    )
    return DerivedSubjectApprovalOut.model_validate(record)


@router.post("/derived-subjects/approve", response_model=DerivedSubjectApprovalOut)
def approve_derived_subject_request(
    payload: DerivedSubjectRequest,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ADMIN_ONLY)),
) -> DerivedSubjectApprovalOut:
    record = approve_derived_subject(
        db,
        scope,
        current_actor,
        teacher_id=payload.teacher_id,
        subject_id=payload.subject_id,
        note=payload.note,
    )
    return DerivedSubjectApprovalOut.model_validate(record)
