from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.exceptions import (
    AppError,
    BatchLimitError,
    CurriculumRuleViolationError,
    DuplicateAssignmentError,
    InvalidAssignmentTargetError,
    PeriodLimitError,
    ResourceNotFoundError,
    TeacherStateError,
    TermStateError,
    WorkloadExceededError,
)
from app.core.security import Actor
from app.models.academic_year import AcademicYear, Term
from app.models.assignment import SubjectAssignment
from app.models.subject import Subject
from app.models.teacher import Teacher
from app.models.timetable_period import TimetablePeriod
from app.schemas.assignment import AssignmentRequest
from app.schemas.timetable import PeriodCreate
from app.services.audit import log_activity
from app.services.conflict_service import SlotCheck, check_slot, classify_integrity_error, refresh_conflict_flags
from app.services.qualification import QualificationResult, check_qualification
from app.services.scope import AssignmentTarget, SchedulingScope, get_school_resource, resolve_target, resolve_term
from app.services.selection_rules import RuleViolation, assigned_subject_ids, check_period_bounds, evaluate
from app.services.workload import WorkloadProjection, current_load, projected_load

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    pending = "pending"
    qualification_checked = "qualification_checked"
    workload_checked = "workload_checked"
    slot_checked = "slot_checked"
    rule_checked = "rule_checked"
    committed = "committed"
    rejected = "rejected"


@dataclass
class ResolvedRequest:
    teacher: Teacher
    subject: Subject
    academic_year: AcademicYear
    term: Term
    target: AssignmentTarget
    weekly_periods: int
    existing: SubjectAssignment | None = None


@dataclass
class Decision:
    stage: Stage = Stage.pending
    rejected_at: str | None = None
    error: AppError | None = None
    qualification: QualificationResult | None = None
    workload: WorkloadProjection | None = None
    slot_checks: list[SlotCheck] = field(default_factory=list)
    warnings: list[dict] = field(default_factory=list)

    @property
    def allowed(self) -> bool:
        return self.error is None

    def reject(self, check: str, error: AppError) -> "Decision":
        self.stage = Stage.rejected
        self.rejected_at = check
        self.error = error
        return self

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "stage": self.stage.value,
            "rejected_at": self.rejected_at,
            "error": self.error.to_dict() if self.error is not None else None,
            "qualification": self.qualification.to_dict() if self.qualification is not None else None,
            "workload": self.workload.to_dict() if self.workload is not None else None,
            "warnings": list(self.warnings),
            "slots": [item.to_dict() for item in self.slot_checks],
        }


@dataclass
class AssignmentOutcome:
    assignment: SubjectAssignment
    periods: list[TimetablePeriod]
    reactivated: bool
    decision: Decision


@dataclass
class BatchOutcome:
    index: int
    status: str
    assignment: SubjectAssignment | None = None
    error: dict | None = None
    warnings: list[dict] = field(default_factory=list)


@dataclass
class BatchResult:
    atomic: bool
    committed: bool
    batch_id: str
    outcomes: list[BatchOutcome]

    @property
    def created_count(self) -> int:
        if not self.committed:
            return 0
        return sum(1 for item in self.outcomes if item.status == "created")

    @property
    def failed_count(self) -> int:
        return len(self.outcomes) - self.created_count


def _violation_key(item: RuleViolation) -> tuple:
    return item.rule_id, item.rule_type, item.pair, item.excess, item.missing_subject_ids


class AssignmentValidator:
    """Runs qualification, workload, slot and curriculum checks, then commits.

    Checks run in that fixed order and the first failure rejects the request.
    The storage unique indexes remain the final arbiter for concurrent writers.
    """

    def __init__(
        self,
        db: Session,
        scope: SchedulingScope,
        actor: Actor,
        settings: Settings | None = None,
    ) -> None:
        self.db = db
        self.scope = scope
        self.actor = actor
        self.settings = settings or get_settings()

    # Resolution

    def _ensure_term_open(self, term: Term) -> None:
        if term.is_finalized:
            raise TermStateError(
                f"Term {term.name} is finalized",
                details={"term_id": term.id, "finalized_at": str(term.finalized_at)},
            )

    def _find_existing(
        self, teacher: Teacher, subject: Subject, academic_year: AcademicYear, term: Term, target: AssignmentTarget
    ) -> SubjectAssignment | None:
        stmt = select(SubjectAssignment).where(
            SubjectAssignment.teacher_id == teacher.id,
            SubjectAssignment.subject_id == subject.id,
            SubjectAssignment.academic_year_id == academic_year.id,
            SubjectAssignment.term_id == term.id,
        )
        if target.stream_id:
            stmt = stmt.where(SubjectAssignment.stream_id == target.stream_id)
        else:
            stmt = stmt.where(SubjectAssignment.classroom_id == target.classroom_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def _load_teacher(self, teacher_id: str, *, for_update: bool) -> Teacher:
        if not for_update:
            return get_school_resource(self.db, self.scope, Teacher, teacher_id, "Teacher")
        # Writers for one teacher queue on the teacher row until commit or rollback.
        teacher = self.db.execute(
            select(Teacher)
            .where(Teacher.id == teacher_id, Teacher.school_id == self.scope.school_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if teacher is None:
            raise ResourceNotFoundError("Teacher", teacher_id)
        return teacher

    def _resolve(self, request: AssignmentRequest, *, for_update: bool = False) -> ResolvedRequest:
        teacher = self._load_teacher(request.teacher_id, for_update=for_update)
        if not teacher.is_active:
            raise TeacherStateError("Teacher is not active", details={"teacher_id": teacher.id})
        subject = get_school_resource(self.db, self.scope, Subject, request.subject_id, "Subject")
        academic_year, term = resolve_term(self.db, self.scope, request.academic_year_id, request.term_id)
        self._ensure_term_open(term)
        target = resolve_target(
            self.db,
            self.scope,
            classroom_id=request.classroom_id,
            stream_id=request.stream_id,
        )

        weekly_periods = request.weekly_periods or self.settings.default_weekly_periods
        if len(request.slots) > weekly_periods:
            raise PeriodLimitError(
                f"{len(request.slots)} slots requested for {weekly_periods} weekly periods",
                details={"slots": len(request.slots), "weekly_periods": weekly_periods},
            )

        existing = self._find_existing(teacher, subject, academic_year, term, target)
        if existing is not None and existing.is_active:
            raise DuplicateAssignmentError(
                "Teacher is already assigned to this subject for the target and term",
                details={"assignment_id": existing.id},
            )
        return ResolvedRequest(
            teacher=teacher,
            subject=subject,
            academic_year=academic_year,
            term=term,
            target=target,
            weekly_periods=weekly_periods,
            existing=existing,
        )

    # Checks

    def _check_curriculum(self, resolved: ResolvedRequest, decision: Decision) -> CurriculumRuleViolationError | None:
        blocking: list[RuleViolation] = []
        bounds = check_period_bounds(resolved.subject, resolved.weekly_periods)
        if bounds is not None:
            blocking.append(bounds)

        target = resolved.target
        current = assigned_subject_ids(
            self.db,
            academic_year_id=resolved.academic_year.id,
            term_id=resolved.term.id,
            classroom_id=target.classroom_id,
            stream_id=target.stream_id,
        )
        curriculum_type = resolved.academic_year.curriculum_type
        before = {
            _violation_key(item)
            for item in evaluate(self.db, curriculum_type, target.level, target.pathway, current)
        }
        after = evaluate(self.db, curriculum_type, target.level, target.pathway, current | {resolved.subject.id})
        for violation in after:
            # Only violations this assignment introduces or worsens can block it.
            if violation.blocks_incremental and _violation_key(violation) not in before:
                blocking.append(violation)
            else:
                decision.warnings.append({"code": "curriculum_incomplete", **violation.to_dict()})

        if blocking:
            return CurriculumRuleViolationError([item.to_dict() for item in blocking])
        return None

    def evaluate(self, request: AssignmentRequest, *, for_update: bool = False) -> tuple[Decision, ResolvedRequest]:
        decision = Decision()
        resolved = self._resolve(request, for_update=for_update)

        qualification = check_qualification(self.db, resolved.teacher, resolved.subject)
        decision.qualification = qualification
        if not qualification.is_eligible:
            error = qualification.as_error(teacher_id=resolved.teacher.id, subject_id=resolved.subject.id)
            return decision.reject("qualification", error), resolved
        decision.stage = Stage.qualification_checked

        projection = projected_load(
            self.db,
            resolved.teacher,
            resolved.academic_year.id,
            resolved.term.id,
            resolved.weekly_periods,
        )
        decision.workload = projection
        if not projection.within_bounds:
            return decision.reject("workload", projection.as_error()), resolved
        if projection.below_minimum:
            decision.warnings.append(
                {
                    "code": "workload_below_minimum",
                    "message": (
                        f"Teacher will have {projection.proposed_total} weekly periods, "
                        f"below the minimum of {projection.min_lessons}"
                    ),
                    "total": projection.proposed_total,
                    "min": projection.min_lessons,
                }
            )
        decision.stage = Stage.workload_checked

        for slot in request.slots:
            result = check_slot(
                self.db,
                teacher_id=resolved.teacher.id,
                academic_year_id=resolved.academic_year.id,
                term_id=resolved.term.id,
                day_of_week=slot.day_of_week,
                period_number=slot.period_number,
                classroom_id=resolved.target.classroom_id,
                stream_id=resolved.target.stream_id,
            )
            decision.slot_checks.append(result)
            if not result.is_free:
                return decision.reject("slot", result.as_error()), resolved
        decision.stage = Stage.slot_checked

        rule_error = self._check_curriculum(resolved, decision)
        if rule_error is not None:
            return decision.reject("curriculum", rule_error), resolved
        decision.stage = Stage.rule_checked
        return decision, resolved

    def validate(self, request: AssignmentRequest) -> Decision:
        """Pre-flight check. Never writes."""
        decision, _ = self.evaluate(request)
        return decision

    # Persistence

    def _persist(
        self,
        request: AssignmentRequest,
        resolved: ResolvedRequest,
        *,
        batch_id: str | None = None,
    ) -> tuple[SubjectAssignment, list[TimetablePeriod], bool]:
        assignment = resolved.existing
        reactivated = assignment is not None
        if assignment is None:
            assignment = SubjectAssignment(
                school_id=self.scope.school_id,
                teacher_id=resolved.teacher.id,
                subject_id=resolved.subject.id,
                academic_year_id=resolved.academic_year.id,
                term_id=resolved.term.id,
                classroom_id=resolved.target.classroom_id,
                stream_id=resolved.target.stream_id,
            )
            self.db.add(assignment)
        assignment.weekly_periods = resolved.weekly_periods
        assignment.assignment_type = request.assignment_type
        assignment.notes = request.notes
        assignment.is_active = True
        assignment.batch_id = batch_id
        assignment.is_bulk_assignment = batch_id is not None
        assignment.created_by_id = self.actor.id
        assignment.deactivated_at = None
        assignment.deactivated_by_id = None
        self.db.flush()

        periods = [
            TimetablePeriod(
                teacher_id=resolved.teacher.id,
                subject_assignment_id=assignment.id,
                classroom_id=resolved.target.classroom_id,
                stream_id=resolved.target.stream_id,
                academic_year_id=resolved.academic_year.id,
                term_id=resolved.term.id,
                day_of_week=slot.day_of_week,
                period_number=slot.period_number,
                start_time=slot.start_time,
                end_time=slot.end_time,
                has_conflict=False,
                conflicting_periods=[],
                is_active=True,
                created_by_id=self.actor.id,
            )
            for slot in request.slots
        ]
        if periods:
            self.db.add_all(periods)
            self.db.flush()

        log_activity(
            self.db,
            actor=self.actor,
            school_id=self.scope.school_id,
            action="assignment.created",
            entity_type="subject_assignment",
            entity_id=assignment.id,
            details={
                "teacher_id": assignment.teacher_id,
                "subject_id": assignment.subject_id,
                "term_id": assignment.term_id,
                "classroom_id": assignment.classroom_id,
                "stream_id": assignment.stream_id,
                "weekly_periods": assignment.weekly_periods,
                "periods": len(periods),
                "reactivated": reactivated,
                "batch_id": batch_id,
            },
        )
        return assignment, periods, reactivated

    def _ensure_load_after_write(self, resolved: ResolvedRequest) -> None:
        """Re-count the teacher's load inside the open transaction, after the flush."""
        teacher = resolved.teacher
        total = current_load(self.db, teacher.id, resolved.academic_year.id, resolved.term.id)
        if total > teacher.max_weekly_lessons:
            raise WorkloadExceededError(
                current=total - resolved.weekly_periods,
                adding=resolved.weekly_periods,
                maximum=teacher.max_weekly_lessons,
                teacher_id=teacher.id,
            )

    def _classify(self, exc: IntegrityError, request: AssignmentRequest) -> AppError:
        return classify_integrity_error(
            self.db,
            exc,
            teacher_id=request.teacher_id,
            academic_year_id=request.academic_year_id,
            term_id=request.term_id,
            slots=[slot.key for slot in request.slots],
            classroom_id=request.classroom_id,
            stream_id=request.stream_id,
        )

    def _refresh_terms(self, terms: set[tuple[str, str]]) -> None:
        for academic_year_id, term_id in terms:
            refresh_conflict_flags(self.db, academic_year_id, term_id)
        self.db.commit()

    def create(self, request: AssignmentRequest, *, batch_id: str | None = None) -> AssignmentOutcome:
        attempt = 0
        while True:
            decision, resolved = self.evaluate(request, for_update=True)
            if not decision.allowed:
                logger.warning(
                    "Assignment rejected at %s for teacher %s subject %s: %s",
                    decision.rejected_at,
                    request.teacher_id,
                    request.subject_id,
                    decision.error.code,
                )
                raise decision.error
            try:
                assignment, periods, reactivated = self._persist(request, resolved, batch_id=batch_id)
                self._ensure_load_after_write(resolved)
                self.db.commit()
            except WorkloadExceededError as exc:
                self.db.rollback()
                if attempt < self.settings.duplicate_retry_attempts:
                    attempt += 1
                    logger.warning(
                        "Concurrent write pushed teacher %s to %s periods, re-validating attempt %s",
                        request.teacher_id,
                        exc.proposed,
                        attempt,
                    )
                    continue
                raise
            except IntegrityError as exc:
                self.db.rollback()
                error = self._classify(exc, request)
                if attempt < self.settings.duplicate_retry_attempts:
                    attempt += 1
                    logger.warning(
                        "Storage conflict committing assignment for teacher %s (%s), re-validating attempt %s",
                        request.teacher_id,
                        error.code,
                        attempt,
                    )
                    continue
                raise error from exc
            break

        decision.stage = Stage.committed
        if periods:
            self._refresh_terms({(assignment.academic_year_id, assignment.term_id)})
        logger.info(
            "Assignment %s committed: teacher %s subject %s (%s periods)",
            assignment.id,
            assignment.teacher_id,
            assignment.subject_id,
            assignment.weekly_periods,
        )
        return AssignmentOutcome(assignment=assignment, periods=periods, reactivated=reactivated, decision=decision)

    # Batches

    def create_batch(self, items: list[AssignmentRequest], *, atomic: bool) -> BatchResult:
        if len(items) > self.settings.max_batch_items:
            raise BatchLimitError(len(items), self.settings.max_batch_items)
        batch_id = str(uuid.uuid4())
        if atomic:
            result = self._create_batch_atomic(items, batch_id)
        else:
            result = self._create_batch_partial(items, batch_id)

        log_activity(
            self.db,
            actor=self.actor,
            school_id=self.scope.school_id,
            action="assignment.batch",
            entity_type="assignment_batch",
            entity_id=batch_id,
            details={
                "atomic": atomic,
                "committed": result.committed,
                "items": len(items),
                "created": result.created_count,
                "failed": result.failed_count,
            },
        )
        self.db.commit()
        logger.info(
            "Assignment batch %s (atomic=%s): %s created, %s failed",
            batch_id,
            atomic,
            result.created_count,
            result.failed_count,
        )
        return result

    def _create_batch_partial(self, items: list[AssignmentRequest], batch_id: str) -> BatchResult:
        outcomes: list[BatchOutcome] = []
        for index, item in enumerate(items):
            try:
                outcome = self.create(item, batch_id=batch_id)
            except AppError as exc:
                self.db.rollback()
                outcomes.append(BatchOutcome(index=index, status="rejected", error=exc.to_dict()))
                continue
            outcomes.append(
                BatchOutcome(
                    index=index,
                    status="created",
                    assignment=outcome.assignment,
                    warnings=outcome.decision.warnings,
                )
            )
        return BatchResult(atomic=False, committed=True, batch_id=batch_id, outcomes=outcomes)

    def _create_batch_atomic(self, items: list[AssignmentRequest], batch_id: str) -> BatchResult:
        staged: list[BatchOutcome] = []
        touched_terms: set[tuple[str, str]] = set()
        failure: tuple[int, AppError] | None = None

        for index, item in enumerate(items):
            try:
                decision, resolved = self.evaluate(item, for_update=True)
                if not decision.allowed:
                    raise decision.error
                assignment, periods, _ = self._persist(item, resolved, batch_id=batch_id)
                self._ensure_load_after_write(resolved)
            except IntegrityError as exc:
                self.db.rollback()
                failure = (index, self._classify(exc, item))
                break
            except AppError as exc:
                failure = (index, exc)
                break
            if periods:
                touched_terms.add((assignment.academic_year_id, assignment.term_id))
            staged.append(
                BatchOutcome(index=index, status="created", assignment=assignment, warnings=decision.warnings)
            )

        if failure is None:
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                failure = (len(staged) - 1, self._classify(exc, items[-1]))

        if failure is not None:
            self.db.rollback()
            failed_index, error = failure
            logger.warning(
                "Atomic batch %s rolled back at item %s: %s",
                batch_id,
                failed_index,
                error.code,
            )
            outcomes: list[BatchOutcome] = []
            for index in range(len(items)):
                if index < failed_index:
                    outcomes.append(BatchOutcome(index=index, status="rolled_back"))
                elif index == failed_index:
                    outcomes.append(BatchOutcome(index=index, status="rejected", error=error.to_dict()))
                else:
                    outcomes.append(BatchOutcome(index=index, status="skipped"))
            return BatchResult(atomic=True, committed=False, batch_id=batch_id, outcomes=outcomes)

        if touched_terms:
            self._refresh_terms(touched_terms)
        return BatchResult(atomic=True, committed=True, batch_id=batch_id, outcomes=staged)

    # Lifecycle

    def _get_assignment(self, assignment_id: str) -> SubjectAssignment:
        return get_school_resource(self.db, self.scope, SubjectAssignment, assignment_id, "SubjectAssignment")

    def deactivate(self, assignment_id: str, reason: str | None = None) -> SubjectAssignment:
        assignment = self._get_assignment(assignment_id)
        if not assignment.is_active:
            return assignment
        term = self.db.get(Term, assignment.term_id)
        self._ensure_term_open(term)

        assignment.is_active = False
        assignment.deactivated_at = datetime.now(timezone.utc)
        assignment.deactivated_by_id = self.actor.id
        periods = self.db.execute(
            select(TimetablePeriod).where(TimetablePeriod.subject_assignment_id == assignment.id)
        ).scalars().all()
        for period in periods:
            period.is_active = False
        self.db.flush()
        refresh_conflict_flags(self.db, assignment.academic_year_id, assignment.term_id)

        log_activity(
            self.db,
            actor=self.actor,
            school_id=self.scope.school_id,
            action="assignment.deactivated",
            entity_type="subject_assignment",
            entity_id=assignment.id,
            details={
                "teacher_id": assignment.teacher_id,
                "weekly_periods": assignment.weekly_periods,
                "periods": len(periods),
                "reason": reason,
            },
        )
        self.db.commit()
        logger.info("Assignment %s deactivated by %s", assignment.id, self.actor.id)
        return assignment

    def _active_period_count(self, assignment: SubjectAssignment) -> int:
        return self.db.execute(
            select(func.count(TimetablePeriod.id)).where(
                TimetablePeriod.subject_assignment_id == assignment.id,
                TimetablePeriod.is_active.is_(True),
            )
        ).scalar_one()

    def _ensure_period_capacity(self, assignment: SubjectAssignment) -> None:
        active = self._active_period_count(assignment)
        if active >= assignment.weekly_periods:
            raise PeriodLimitError(
                f"Assignment already has {active} of {assignment.weekly_periods} weekly periods scheduled",
                details={"assignment_id": assignment.id, "scheduled": active, "weekly_periods": assignment.weekly_periods},
            )

    def _commit_period(self, period: TimetablePeriod) -> None:
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise classify_integrity_error(
                self.db,
                exc,
                teacher_id=period.teacher_id,
                academic_year_id=period.academic_year_id,
                term_id=period.term_id,
                slots=[(period.day_of_week, period.period_number)],
                classroom_id=period.classroom_id,
                stream_id=period.stream_id,
            ) from exc

    def schedule_period(self, assignment_id: str, payload: PeriodCreate) -> TimetablePeriod:
        assignment = self._get_assignment(assignment_id)
        if not assignment.is_active:
            raise InvalidAssignmentTargetError(
                "Cannot schedule periods for an inactive assignment",
                details={"assignment_id": assignment.id},
            )
        self._ensure_term_open(self.db.get(Term, assignment.term_id))
        self._ensure_period_capacity(assignment)

        result = check_slot(
            self.db,
            teacher_id=assignment.teacher_id,
            academic_year_id=assignment.academic_year_id,
            term_id=assignment.term_id,
            day_of_week=payload.day_of_week,
            period_number=payload.period_number,
            classroom_id=assignment.classroom_id,
            stream_id=assignment.stream_id,
        )
        if not result.is_free and not payload.allow_conflict_override:
            raise result.as_error()

        # An overridden period is parked inactive so it never occupies the slot.
        period = TimetablePeriod(
            teacher_id=assignment.teacher_id,
            subject_assignment_id=assignment.id,
            classroom_id=assignment.classroom_id,
            stream_id=assignment.stream_id,
            academic_year_id=assignment.academic_year_id,
            term_id=assignment.term_id,
            day_of_week=payload.day_of_week,
            period_number=payload.period_number,
            start_time=payload.start_time,
            end_time=payload.end_time,
            has_conflict=not result.is_free,
            conflicting_periods=[item.period_id for item in result.occupants],
            is_active=result.is_free,
            created_by_id=self.actor.id,
        )
        self.db.add(period)
        self._commit_period(period)
        refresh_conflict_flags(self.db, assignment.academic_year_id, assignment.term_id)

        if result.is_free:
            action = "timetable.period_scheduled"
        else:
            action = "timetable.override"
            logger.warning(
                "Conflict override by %s: assignment %s parked on %s period %s (%s)",
                self.actor.id,
                assignment.id,
                payload.day_of_week,
                payload.period_number,
                ", ".join(item.axis.value for item in result.occupants),
            )
        log_activity(
            self.db,
            actor=self.actor,
            school_id=self.scope.school_id,
            action=action,
            entity_type="timetable_period",
            entity_id=period.id,
            details={
                "assignment_id": assignment.id,
                "day_of_week": period.day_of_week,
                "period_number": period.period_number,
                "occupants": [item.to_dict() for item in result.occupants],
            },
        )
        self.db.commit()
        return period

    def _get_period(self, period_id: str) -> tuple[TimetablePeriod, SubjectAssignment]:
        period = self.db.get(TimetablePeriod, period_id)
        if period is None:
            raise ResourceNotFoundError("TimetablePeriod", period_id)
        assignment = self.db.get(SubjectAssignment, period.subject_assignment_id)
        if assignment is None or assignment.school_id != self.scope.school_id:
            raise ResourceNotFoundError("TimetablePeriod", period_id)
        return period, assignment

    def activate_period(self, period_id: str) -> TimetablePeriod:
        period, assignment = self._get_period(period_id)
        if period.is_active:
            return period
        if not assignment.is_active:
            raise InvalidAssignmentTargetError(
                "Cannot activate a period of an inactive assignment",
                details={"assignment_id": assignment.id, "period_id": period.id},
            )
        self._ensure_term_open(self.db.get(Term, assignment.term_id))
        self._ensure_period_capacity(assignment)
        check_slot(
            self.db,
            teacher_id=period.teacher_id,
            academic_year_id=period.academic_year_id,
            term_id=period.term_id,
            day_of_week=period.day_of_week,
            period_number=period.period_number,
            classroom_id=period.classroom_id,
            stream_id=period.stream_id,
            exclude_period_id=period.id,
        ).raise_for_conflict()

        period.is_active = True
        self._commit_period(period)
        refresh_conflict_flags(self.db, period.academic_year_id, period.term_id)
        log_activity(
            self.db,
            actor=self.actor,
            school_id=self.scope.school_id,
            action="timetable.period_activated",
            entity_type="timetable_period",
            entity_id=period.id,
            details={"assignment_id": assignment.id},
        )
        self.db.commit()
        logger.info("Timetable period %s activated by %s", period.id, self.actor.id)
        return period

    def discard_period(self, period_id: str) -> None:
        period, assignment = self._get_period(period_id)
        if period.is_active:
            raise InvalidAssignmentTargetError(
                "Only parked periods can be discarded; deactivate the assignment instead",
                details={"period_id": period.id},
            )
        academic_year_id, term_id = period.academic_year_id, period.term_id
        self.db.delete(period)
        self.db.flush()
        refresh_conflict_flags(self.db, academic_year_id, term_id)
        log_activity(
            self.db,
            actor=self.actor,
            school_id=self.scope.school_id,
            action="timetable.period_discarded",
            entity_type="timetable_period",
            entity_id=period_id,
            details={"assignment_id": assignment.id},
        )
        self.db.commit()


def list_assignments(
    db: Session,
    scope: SchedulingScope,
    *,
    teacher_id: str | None = None,
    subject_id: str | None = None,
    academic_year_id: str | None = None,
    term_id: str | None = None,
    target_id: str | None = None,
    is_active: bool | None = None,
) -> list[SubjectAssignment]:
    stmt = select(SubjectAssignment).where(SubjectAssignment.school_id == scope.school_id)
    if teacher_id:
        stmt = stmt.where(SubjectAssignment.teacher_id == teacher_id)
    if subject_id:
        stmt = stmt.where(SubjectAssignment.subject_id == subject_id)
    if academic_year_id:
        stmt = stmt.where(SubjectAssignment.academic_year_id == academic_year_id)
    if term_id:
        stmt = stmt.where(SubjectAssignment.term_id == term_id)
    if target_id:
        stmt = stmt.where(or_(SubjectAssignment.classroom_id == target_id, SubjectAssignment.stream_id == target_id))
    if is_active is not None:
        stmt = stmt.where(SubjectAssignment.is_active.is_(is_active))
    return list(db.execute(stmt.order_by(SubjectAssignment.created_at)).scalars())


def periods_for_assignment(db: Session, assignment_id: str) -> list[TimetablePeriod]:
    return list(
        db.execute(
            select(TimetablePeriod)
            .where(TimetablePeriod.subject_assignment_id == assignment_id)
            .order_by(TimetablePeriod.day_of_week, TimetablePeriod.period_number)
        ).scalars()
    )
