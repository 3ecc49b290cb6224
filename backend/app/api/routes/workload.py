from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import ANY_ROLE, get_db, get_scope, require_roles
from app.core.security import Actor
from app.models.teacher import Teacher
from app.schemas.workload import WorkloadReportOut
from app.services.scope import SchedulingScope, get_school_resource, resolve_term
from app.services.workload import workload_report

router = APIRouter()


@router.get("/teachers/{teacher_id}", response_model=WorkloadReportOut)
def get_teacher_workload(
    teacher_id: str,
    academic_year_id: str = Query(min_length=1, max_length=36),
    term_id: str = Query(min_length=1, max_length=36),
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> WorkloadReportOut:
    teacher = get_school_resource(db, scope, Teacher, teacher_id, "Teacher")
    academic_year, term = resolve_term(db, scope, academic_year_id, term_id)
    return WorkloadReportOut.model_validate(workload_report(db, teacher, academic_year.id, term.id))
