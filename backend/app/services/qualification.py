from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import IneligibleError
from app.models.approval import ApprovalStatus, DerivedSubjectApproval
from app.models.subject import Subject
from app.models.teacher import Teacher
from app.services.combination_registry import CombinationRegistry, GrantKind, registry as default_registry


class QualificationStatus(str, Enum):
    eligible = "eligible"
    eligible_pending_approval = "eligible_pending_approval"
    ineligible = "ineligible"


class QualificationReason(str, Enum):
    not_covered = "not_covered"
    level_pathway_mismatch = "level_pathway_mismatch"
    curriculum_mismatch = "curriculum_mismatch"
    pending_approval = "pending_approval"
    no_combination = "no_combination"


REASON_MESSAGES = {
    QualificationReason.not_covered: "Subject is not covered by the teacher's combination",
    QualificationReason.level_pathway_mismatch: "Subject level or pathway is outside the combination's scope",
    QualificationReason.curriculum_mismatch: "Subject curriculum is not covered by the combination",
    QualificationReason.pending_approval: "Derived subject requires administrator approval",
    QualificationReason.no_combination: "Teacher has no active subject combination",
}


@dataclass(frozen=True)
class QualificationResult:
    status: QualificationStatus
    grant_kind: GrantKind
    reason: QualificationReason | None = None
    combination_code: str | None = None
    approval_id: str | None = None

    @property
    def is_eligible(self) -> bool:
        return self.status is QualificationStatus.eligible

    @property
    def message(self) -> str | None:
        if self.reason is None:
            return None
        return REASON_MESSAGES[self.reason]

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "grant_kind": self.grant_kind.value,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
            "combination_code": self.combination_code,
            "approval_id": self.approval_id,
        }

    def as_error(self, *, teacher_id: str, subject_id: str) -> IneligibleError:
        return IneligibleError(
            self.message or "Teacher is not eligible for this subject",
            reason=self.reason.value if self.reason else QualificationReason.not_covered.value,
            details={
                "teacher_id": teacher_id,
                "subject_id": subject_id,
                "grant_kind": self.grant_kind.value,
                "combination_code": self.combination_code,
            },
        )


def _ineligible(reason: QualificationReason, kind: GrantKind, code: str | None) -> QualificationResult:
    return QualificationResult(
        status=QualificationStatus.ineligible,
        grant_kind=kind,
        reason=reason,
        combination_code=code,
    )


def find_approval(db: Session, teacher_id: str, subject_id: str) -> DerivedSubjectApproval | None:
    return db.execute(
        select(DerivedSubjectApproval).where(
            DerivedSubjectApproval.teacher_id == teacher_id,
            DerivedSubjectApproval.subject_id == subject_id,
        )
    ).scalar_one_or_none()


def is_approved(record: DerivedSubjectApproval | None) -> bool:
    if record is None:
        return False
    return (
        record.status == ApprovalStatus.approved
        and record.approved_by_id is not None
        and record.approved_at is not None
    )


def check_qualification(
    db: Session,
    teacher: Teacher,
    subject: Subject,
    level: str | None = None,
    pathway: str | None = None,
    *,
    registry: CombinationRegistry | None = None,
) -> QualificationResult:
    """Decide whether ``teacher`` may teach ``subject``.

    ``level`` and ``pathway`` default to the subject's own tags. A primary grant
    never overrides the combination's level or pathway scope.
    """
    registry = registry or default_registry
    grant = registry.resolve(db, teacher.combination_id)
    if grant is None:
        return _ineligible(QualificationReason.no_combination, GrantKind.none, teacher.combination_code)

    kind = grant.grant_kind(subject)
    if kind is GrantKind.none:
        return _ineligible(QualificationReason.not_covered, kind, grant.code)

    level = level or subject.level
    pathway = pathway if pathway is not None else subject.pathway
    if not grant.covers_level(level) or not grant.covers_pathway(level, pathway):
        return _ineligible(QualificationReason.level_pathway_mismatch, kind, grant.code)

    if not grant.covers_curriculum(subject.curriculum_type):
        return _ineligible(QualificationReason.curriculum_mismatch, kind, grant.code)

    if kind is GrantKind.primary:
        return QualificationResult(status=QualificationStatus.eligible, grant_kind=kind, combination_code=grant.code)

    record = find_approval(db, teacher.id, subject.id)
    if is_approved(record):
        return QualificationResult(
            status=QualificationStatus.eligible,
            grant_kind=kind,
            combination_code=grant.code,
            approval_id=record.id,
        )
    return QualificationResult(
        status=QualificationStatus.eligible_pending_approval,
        grant_kind=kind,
        reason=QualificationReason.pending_approval,
        combination_code=grant.code,
        approval_id=record.id if record is not None else None,
    )
