import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from app.core.config import get_settings
from app.db.base import Base
from app.core.exceptions import (
    BatchLimitError,
    DuplicateAssignmentError,
    InvalidAssignmentTargetError,
    PeriodLimitError,
    SlotConflictError,
    TeacherStateError,
    TermStateError,
    WorkloadExceededError,
)
from app.models.activity_log import ActivityLog
from app.models.assignment import SubjectAssignment
from app.models.selection_rule import RuleType
from app.models.timetable_period import TimetablePeriod
from app.schemas.assignment import AssignmentRequest
from app.services import assignment_validator as validator_module
from app.services.assignment_validator import AssignmentValidator, Stage
from app.services.combination_registry import registry
from app.services.conflict_service import SlotCheck
from app.services.scope import resolve_scope
from factories import build_world, make_actor, make_rule


@pytest.fixture()
def validator(db_session, world):
    return AssignmentValidator(db_session, resolve_scope(db_session, world.school.id), make_actor(world.school.id))


def _request(world, teacher, subject, *, classroom=None, weekly_periods=5, slots=(), **extra):
    return AssignmentRequest(
        teacher_id=teacher.id,
        subject_id=world.subjects[subject].id,
        academic_year_id=world.academic_year.id,
        term_id=world.term.id,
        classroom_id=(classroom or world.east).id,
        weekly_periods=weekly_periods,
        slots=[{"day_of_week": day, "period_number": number} for day, number in slots],
        **extra,
    )


def _assignment_count(db):
    return db.execute(select(func.count(SubjectAssignment.id))).scalar_one()


def test_validate_never_writes(db_session, world, validator):
    decision = validator.validate(_request(world, world.jane, "Mathematics", slots=[("Monday", 1)]))

    assert decision.allowed
    assert decision.stage is Stage.rule_checked
    assert _assignment_count(db_session) == 0
    assert db_session.execute(select(func.count(ActivityLog.id))).scalar_one() == 0


def test_qualification_runs_before_workload(db_session, world, validator):
    decision = validator.validate(_request(world, world.jane, "Biology", weekly_periods=40))

    assert not decision.allowed
    assert decision.rejected_at == "qualification"
    assert decision.error.code == "ineligible"
    assert decision.error.details["reason"] == "not_covered"
    assert decision.workload is None


def test_workload_rejection_after_qualification(db_session, world, validator):
    validator.create(_request(world, world.jane, "Mathematics", weekly_periods=10))
    validator.create(_request(world, world.jane, "Mathematics", classroom=world.west, weekly_periods=10))
    validator.create(_request(world, world.jane, "Physics", weekly_periods=5))

    decision = validator.validate(_request(world, world.jane, "Physics", classroom=world.west, weekly_periods=3))

    assert decision.rejected_at == "workload"
    assert decision.error.code == "workload_exceeded"
    assert decision.error.details["proposed"] == 28
    assert decision.qualification.is_eligible


def test_below_minimum_is_a_warning(world, validator):
    decision = validator.validate(_request(world, world.jane, "Mathematics"))

    assert decision.allowed
    assert [item["code"] for item in decision.warnings] == ["workload_below_minimum"]


def test_create_persists_assignment_periods_and_audit(db_session, world, validator):
    outcome = validator.create(
        _request(world, world.jane, "Mathematics", slots=[("Monday", 1), ("Wed", 2)])
    )

    assert outcome.decision.stage is Stage.committed
    assert not outcome.reactivated
    assert outcome.assignment.created_by_id == "scheduler-1"
    assert sorted(period.day_of_week for period in outcome.periods) == ["Monday", "Wednesday"]
    actions = db_session.execute(select(ActivityLog.action)).scalars().all()
    assert actions == ["assignment.created"]


def test_default_weekly_periods_from_settings(world, validator):
    outcome = validator.create(_request(world, world.jane, "Mathematics", weekly_periods=None))

    assert outcome.assignment.weekly_periods == get_settings().default_weekly_periods


def test_slot_conflict_on_teacher_axis(world, validator):
    first = validator.create(_request(world, world.jane, "Mathematics", slots=[("Monday", 3)]))

    decision = validator.validate(
        _request(world, world.jane, "Physics", classroom=world.west, slots=[("Monday", 3)])
    )

    assert decision.rejected_at == "slot"
    assert decision.error.details["axis"] == "teacher"
    assert decision.error.details["occupant_assignment_id"] == first.assignment.id


def test_active_duplicate_is_rejected(world, validator):
    validator.create(_request(world, world.jane, "Mathematics"))

    with pytest.raises(DuplicateAssignmentError):
        validator.create(_request(world, world.jane, "Mathematics"))


def test_deactivated_assignment_is_reactivated(db_session, world, validator):
    first = validator.create(_request(world, world.jane, "Mathematics", slots=[("Monday", 1)]))
    validator.deactivate(first.assignment.id, reason="Timetable reshuffle")

    assert not first.assignment.is_active
    assert first.assignment.deactivated_by_id == "scheduler-1"
    periods = db_session.execute(select(TimetablePeriod)).scalars().all()
    assert all(not period.is_active for period in periods)

    again = validator.create(_request(world, world.jane, "Mathematics", weekly_periods=6, slots=[("Monday", 1)]))

    assert again.reactivated
    assert again.assignment.id == first.assignment.id
    assert again.assignment.weekly_periods == 6
    assert again.assignment.deactivated_at is None
    assert _assignment_count(db_session) == 1


def test_more_slots_than_weekly_periods(world, validator):
    days = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
    request = _request(world, world.jane, "Mathematics", weekly_periods=None, slots=[(day, 1) for day in days])

    with pytest.raises(PeriodLimitError):
        validator.create(request)


def test_target_must_match_scheduling_mode(db_session, world):
    world.school.uses_streams = True
    db_session.commit()
    validator = AssignmentValidator(db_session, resolve_scope(db_session, world.school.id), make_actor(world.school.id))

    with pytest.raises(InvalidAssignmentTargetError) as exc_info:
        validator.validate(_request(world, world.jane, "Mathematics"))
    assert exc_info.value.details["expected_target"] == "stream"


def test_finalized_term_rejects_new_assignments(db_session, world, validator):
    world.term.is_finalized = True
    db_session.commit()

    with pytest.raises(TermStateError):
        validator.create(_request(world, world.jane, "Mathematics"))


def test_new_max_count_violation_blocks(db_session, world, validator):
    physics, chemistry = world.subjects["Physics"].id, world.subjects["Chemistry"].id
    make_rule(db_session, RuleType.max_count, [physics, chemistry], max_count=1, description="One lab science")
    db_session.commit()
    validator.create(_request(world, world.jane, "Physics"))

    decision = validator.validate(_request(world, world.peter, "Chemistry"))

    assert decision.rejected_at == "curriculum"
    assert decision.error.code == "curriculum_rule_violation"
    assert decision.error.details["violations"][0]["excess"] == 1


def test_incompatible_pair_blocks(db_session, world, validator):
    biology, chemistry = world.subjects["Biology"].id, world.subjects["Chemistry"].id
    make_rule(db_session, RuleType.incompatible_pair, [biology, chemistry], description="Same lab block")
    db_session.commit()
    validator.create(_request(world, world.peter, "Biology"))

    decision = validator.validate(_request(world, world.peter, "Chemistry"))

    assert decision.rejected_at == "curriculum"
    assert decision.error.details["violations"][0]["pair"] == [biology, chemistry]


def test_unmet_minimum_is_only_a_warning(db_session, world, validator):
    science_ids = [world.subjects[name].id for name in ("Mathematics", "Physics", "Chemistry", "Biology")]
    make_rule(db_session, RuleType.min_count, science_ids, min_count=3, description="Three sciences")
    db_session.commit()

    decision = validator.validate(_request(world, world.jane, "Mathematics"))

    assert decision.allowed
    curriculum = [item for item in decision.warnings if item["code"] == "curriculum_incomplete"]
    assert curriculum[0]["shortfall"] == 2


def test_subject_period_bounds_block(world, validator):
    decision = validator.validate(_request(world, world.jane, "Mathematics", weekly_periods=12))

    assert decision.rejected_at == "curriculum"
    assert decision.error.details["violations"][0]["rule_type"] == "subject_period_bounds"


def test_race_between_check_and_commit_becomes_slot_conflict(db_session, world, validator, monkeypatch):
    occupant = validator.create(_request(world, world.peter, "Biology", slots=[("Monday", 3)]))
    calls = []

    def always_free(db, **kwargs):
        calls.append(kwargs)
        return SlotCheck(day_of_week=kwargs["day_of_week"], period_number=kwargs["period_number"])

    monkeypatch.setattr(validator_module, "check_slot", always_free)

    with pytest.raises(SlotConflictError) as exc_info:
        validator.create(_request(world, world.jane, "Mathematics", slots=[("Monday", 3)]))

    assert exc_info.value.details["axis"] == "classroom"
    assert exc_info.value.details["occupant_assignment_id"] == occupant.assignment.id
    assert len(calls) == 1 + get_settings().duplicate_retry_attempts
    assert _assignment_count(db_session) == 1


def test_partial_batch_keeps_valid_items(db_session, world, validator):
    result = validator.create_batch(
        [
            _request(world, world.jane, "Mathematics"),
            _request(world, world.jane, "Biology"),
            _request(world, world.peter, "Biology"),
        ],
        atomic=False,
    )

    assert result.committed
    assert [item.status for item in result.outcomes] == ["created", "rejected", "created"]
    assert result.outcomes[1].error["code"] == "ineligible"
    assert result.created_count == 2
    assert result.failed_count == 1
    rows = db_session.execute(select(SubjectAssignment)).scalars().all()
    assert {row.batch_id for row in rows} == {result.batch_id}
    assert all(row.is_bulk_assignment for row in rows)


def test_atomic_batch_rolls_back_everything(db_session, world, validator):
    result = validator.create_batch(
        [
            _request(world, world.jane, "Mathematics"),
            _request(world, world.jane, "Biology"),
            _request(world, world.peter, "Biology"),
        ],
        atomic=True,
    )

    assert not result.committed
    assert [item.status for item in result.outcomes] == ["rolled_back", "rejected", "skipped"]
    assert result.created_count == 0
    assert result.failed_count == 3
    assert _assignment_count(db_session) == 0
    audit = db_session.execute(select(ActivityLog).where(ActivityLog.action == "assignment.batch")).scalar_one()
    assert audit.details["committed"] is False


def test_atomic_batch_sees_its_own_items(db_session, world, validator):
    result = validator.create_batch(
        [
            _request(world, world.jane, "Mathematics", slots=[("Monday", 3)]),
            _request(world, world.jane, "Physics", classroom=world.west, slots=[("Monday", 3)]),
        ],
        atomic=True,
    )

    assert not result.committed
    assert result.outcomes[1].error["code"] == "slot_conflict"
    assert _assignment_count(db_session) == 0


def test_batch_size_limit(world, validator):
    items = [_request(world, world.jane, "Mathematics")] * (get_settings().max_batch_items + 1)

    with pytest.raises(BatchLimitError):
        validator.create_batch(items, atomic=False)


def test_inactive_teacher_is_a_state_error(db_session, world, validator):
    world.jane.is_active = False
    db_session.commit()

    with pytest.raises(TeacherStateError) as exc_info:
        validator.create(_request(world, world.jane, "Mathematics"))

    assert exc_info.value.status_code == 409
    assert exc_info.value.code == "teacher_inactive"
    assert exc_info.value.details == {"teacher_id": world.jane.id}
    assert _assignment_count(db_session) == 0


@pytest.fixture()
def file_engine(tmp_path):
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'assignments.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    registry.invalidate()
    yield engine
    registry.invalidate()
    engine.dispose()


def _committed_load(engine, teacher_id):
    with sessionmaker(bind=engine)() as db:
        return db.execute(
            select(func.coalesce(func.sum(SubjectAssignment.weekly_periods), 0)).where(
                SubjectAssignment.teacher_id == teacher_id,
                SubjectAssignment.is_active.is_(True),
            )
        ).scalar_one()


def test_concurrent_writer_cannot_push_teacher_past_maximum(file_engine, monkeypatch):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    with SessionLocal() as first, SessionLocal() as second:
        world = build_world(first)
        teacher_id = world.jane.id
        actor = make_actor(world.school.id)
        writer = AssignmentValidator(first, resolve_scope(first, world.school.id), actor)
        rival = AssignmentValidator(second, resolve_scope(second, world.school.id), actor)
        writer.create(_request(world, world.jane, "Mathematics", weekly_periods=10))
        physics = _request(world, world.jane, "Physics", weekly_periods=10)
        maths_west = _request(world, world.jane, "Mathematics", classroom=world.west, weekly_periods=10)

        original_persist = writer._persist
        rival_outcomes = []

        def persist_after_rival_commits(request, resolved, **kwargs):
            # The rival request lands between the workload check and the write.
            if not rival_outcomes:
                rival_outcomes.append(rival.create(maths_west))
            return original_persist(request, resolved, **kwargs)

        monkeypatch.setattr(writer, "_persist", persist_after_rival_commits)

        with pytest.raises(WorkloadExceededError) as exc_info:
            writer.create(physics)

        assert exc_info.value.maximum == 27
        assert exc_info.value.proposed == 30
        assert rival_outcomes[0].assignment.weekly_periods == 10

    assert _committed_load(file_engine, teacher_id) == 20


def test_atomic_batch_rechecks_load_after_each_write(db_session, world, validator, monkeypatch):
    calls = []
    original = validator_module.current_load

    def counting_current_load(*args, **kwargs):
        calls.append(args[1:])
        return original(*args, **kwargs)

    monkeypatch.setattr(validator_module, "current_load", counting_current_load)

    result = validator.create_batch(
        [
            _request(world, world.jane, "Mathematics", weekly_periods=10),
            _request(world, world.jane, "Physics", weekly_periods=10),
        ],
        atomic=True,
    )

    assert result.committed
    assert calls == [(world.jane.id, world.academic_year.id, world.term.id)] * 2
