from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import ANY_ROLE, get_db, get_scope, require_roles
from app.core.security import Actor
from app.schemas.compliance import ComplianceReportOut
from app.services.compliance import compliance_report
from app.services.scope import SchedulingScope

router = APIRouter()


@router.get("/classrooms/{classroom_id}", response_model=ComplianceReportOut)
def get_classroom_compliance(
    classroom_id: str,
    academic_year_id: str = Query(min_length=1, max_length=36),
    term_id: str = Query(min_length=1, max_length=36),
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> ComplianceReportOut:
    report = compliance_report(
        db,
        scope,
        academic_year_id=academic_year_id,
        term_id=term_id,
        classroom_id=classroom_id,
    )
    return ComplianceReportOut.model_validate(report)


@router.get("/streams/{stream_id}", response_model=ComplianceReportOut)
def get_stream_compliance(
    stream_id: str,
    academic_year_id: str = Query(min_length=1, max_length=36),
    term_id: str = Query(min_length=1, max_length=36),
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> ComplianceReportOut:
    report = compliance_report(
        db,
        scope,
        academic_year_id=academic_year_id,
        term_id=term_id,
        stream_id=stream_id,
    )
    return ComplianceReportOut.model_validate(report)
