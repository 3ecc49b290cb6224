from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.subject import Subject
from app.services.scope import SchedulingScope, resolve_target, resolve_term
from app.services.selection_rules import assigned_subject_ids, evaluate


def compliance_report(
    db: Session,
    scope: SchedulingScope,
    *,
    academic_year_id: str,
    term_id: str,
    classroom_id: str | None = None,
    stream_id: str | None = None,
) -> dict:
    academic_year, term = resolve_term(db, scope, academic_year_id, term_id)
    target = resolve_target(db, scope, classroom_id=classroom_id, stream_id=stream_id)
    assigned = assigned_subject_ids(
        db,
        academic_year_id=academic_year.id,
        term_id=term.id,
        classroom_id=target.classroom_id,
        stream_id=target.stream_id,
    )
    violations = evaluate(db, academic_year.curriculum_type, target.level, target.pathway, assigned)
    subjects = (
        db.execute(select(Subject).where(Subject.id.in_(assigned)).order_by(Subject.name)).scalars().all()
        if assigned
        else []
    )
    return {
        "target_kind": target.kind,
        "target_id": target.id,
        "target_name": target.name,
        "academic_year_id": academic_year.id,
        "term_id": term.id,
        "curriculum_type": academic_year.curriculum_type,
        "level": target.level,
        "pathway": target.pathway,
        "assigned_subjects": [{"id": item.id, "name": item.name} for item in subjects],
        "compliant": not violations,
        "violations": [item.to_dict() for item in violations],
    }
