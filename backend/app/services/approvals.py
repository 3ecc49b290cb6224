from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import ApprovalStateError
from app.core.security import Actor
from app.models.approval import ApprovalStatus, DerivedSubjectApproval
from app.models.subject import Subject
from app.models.teacher import Teacher
from app.services.audit import log_activity
from app.services.combination_registry import GrantKind, registry
from app.services.qualification import find_approval
from app.services.scope import SchedulingScope, get_school_resource

logger = logging.getLogger(__name__)


def _load_derived_pair(
    db: Session, scope: SchedulingScope, teacher_id: str, subject_id: str
) -> tuple[Teacher, Subject]:
    teacher = get_school_resource(db, scope, Teacher, teacher_id, "Teacher")
    subject = get_school_resource(db, scope, Subject, subject_id, "Subject")
    kind = registry.grant_kind(db, teacher.combination_id, subject)
    if kind is not GrantKind.derived:
        raise ApprovalStateError(
            f"{subject.name} is not a derived subject of the teacher's combination",
            details={"teacher_id": teacher.id, "subject_id": subject.id, "grant_kind": kind.value},
        )
    return teacher, subject


def request_derived_approval(
    db: Session,
    scope: SchedulingScope,
    actor: Actor,
    *,
    teacher_id: str,
    subject_id: str,
    note: str | None = None,
) -> DerivedSubjectApproval:
    teacher, subject = _load_derived_pair(db, scope, teacher_id, subject_id)
    record = find_approval(db, teacher.id, subject.id)
    if record is not None:
        return record

    record = DerivedSubjectApproval(
        teacher_id=teacher.id,
        subject_id=subject.id,
        status=ApprovalStatus.pending,
        requested_by_id=actor.id,
        note=note,
    )
    db.add(record)
    db.flush()
    log_activity(
        db,
        actor=actor,
        school_id=scope.school_id,
        action="approval.requested",
        entity_type="derived_subject_approval",
        entity_id=record.id,
        details={"teacher_id": teacher.id, "subject_id": subject.id},
    )
    db.commit()
    db.refresh(record)
    logger.info("Derived subject approval requested for teacher %s subject %s", teacher.id, subject.id)
    return record


def approve_derived_subject(
    db: Session,
    scope: SchedulingScope,
    actor: Actor,
    *,
    teacher_id: str,
    subject_id: str,
    note: str | None = None,
) -> DerivedSubjectApproval:
    """Move a derived grant to approved, recording who approved it and when."""
    teacher, subject = _load_derived_pair(db, scope, teacher_id, subject_id)
    record = find_approval(db, teacher.id, subject.id)
    if record is not None and record.status == ApprovalStatus.approved:
        raise ApprovalStateError(
            "Derived subject is already approved",
            details={"approval_id": record.id, "approved_by_id": record.approved_by_id},
        )
    if record is None:
        record = DerivedSubjectApproval(
            teacher_id=teacher.id,
            subject_id=subject.id,
            requested_by_id=actor.id,
        )
        db.add(record)

    record.status = ApprovalStatus.approved
    record.approved_by_id = actor.id
    record.approved_at = datetime.now(timezone.utc)
    if note:
        record.note = note
    db.flush()
    log_activity(
        db,
        actor=actor,
        school_id=scope.school_id,
        action="approval.granted",
        entity_type="derived_subject_approval",
        entity_id=record.id,
        details={"teacher_id": teacher.id, "subject_id": subject.id, "approved_at": record.approved_at.isoformat()},
    )
    db.commit()
    db.refresh(record)
    logger.info("Derived subject %s approved for teacher %s by %s", subject.id, teacher.id, actor.id)
    return record


def list_approvals(
    db: Session,
    scope: SchedulingScope,
    *,
    status: ApprovalStatus | None = None,
    teacher_id: str | None = None,
) -> list[DerivedSubjectApproval]:
    stmt = (
        select(DerivedSubjectApproval)
        .join(Teacher, Teacher.id == DerivedSubjectApproval.teacher_id)
        .where(Teacher.school_id == scope.school_id)
    )
    if status is not None:
        stmt = stmt.where(DerivedSubjectApproval.status == status)
    if teacher_id:
        stmt = stmt.where(DerivedSubjectApproval.teacher_id == teacher_id)
    return list(db.execute(stmt.order_by(DerivedSubjectApproval.requested_at)).scalars())
