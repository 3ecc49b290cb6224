import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import SlotConflictError
from app.models.assignment import SubjectAssignment
from app.models.timetable_period import TimetablePeriod
from app.services.conflict_service import SlotAxis, check_slot, classify_integrity_error, refresh_conflict_flags


def _assignment(db, world, teacher, subject, classroom):
    assignment = SubjectAssignment(
        school_id=world.school.id,
        teacher_id=teacher.id,
        subject_id=world.subjects[subject].id,
        academic_year_id=world.academic_year.id,
        term_id=world.term.id,
        classroom_id=classroom.id,
        weekly_periods=5,
    )
    db.add(assignment)
    db.flush()
    return assignment


def _period(db, world, assignment, day="Monday", number=3, *, is_active=True):
    period = TimetablePeriod(
        teacher_id=assignment.teacher_id,
        subject_assignment_id=assignment.id,
        classroom_id=assignment.classroom_id,
        academic_year_id=world.academic_year.id,
        term_id=world.term.id,
        day_of_week=day,
        period_number=number,
        is_active=is_active,
    )
    db.add(period)
    db.flush()
    return period


def _check(db, world, teacher, classroom, day="Monday", number=3, **kwargs):
    return check_slot(
        db,
        teacher_id=teacher.id,
        academic_year_id=world.academic_year.id,
        term_id=world.term.id,
        day_of_week=day,
        period_number=number,
        classroom_id=classroom.id,
        **kwargs,
    )


def test_empty_slot_is_free(db_session, world):
    result = _check(db_session, world, world.jane, world.east)

    assert result.is_free
    assert result.to_dict()["occupants"] == []


def test_teacher_axis_occupied_in_another_classroom(db_session, world):
    maths = _assignment(db_session, world, world.jane, "Mathematics", world.east)
    occupant = _period(db_session, world, maths)
    db_session.commit()

    result = _check(db_session, world, world.jane, world.west)

    assert not result.is_free
    assert result.first.axis is SlotAxis.teacher
    assert result.first.period_id == occupant.id
    error = result.as_error()
    assert isinstance(error, SlotConflictError)
    assert error.status_code == 409
    assert error.details["occupant_assignment_id"] == maths.id


def test_classroom_axis_occupied_by_another_teacher(db_session, world):
    maths = _assignment(db_session, world, world.jane, "Mathematics", world.east)
    _period(db_session, world, maths)
    db_session.commit()

    result = _check(db_session, world, world.peter, world.east)

    assert [item.axis for item in result.occupants] == [SlotAxis.classroom]


def test_other_days_and_excluded_period_are_free(db_session, world):
    maths = _assignment(db_session, world, world.jane, "Mathematics", world.east)
    occupant = _period(db_session, world, maths)
    db_session.commit()

    assert _check(db_session, world, world.jane, world.east, day="Tuesday").is_free
    assert _check(db_session, world, world.jane, world.east, number=4).is_free
    assert _check(db_session, world, world.jane, world.east, exclude_period_id=occupant.id).is_free


def test_inactive_periods_do_not_occupy(db_session, world):
    maths = _assignment(db_session, world, world.jane, "Mathematics", world.east)
    _period(db_session, world, maths, is_active=False)
    db_session.commit()

    assert _check(db_session, world, world.jane, world.east).is_free


def test_refresh_flags_parked_period_against_occupant(db_session, world):
    maths = _assignment(db_session, world, world.jane, "Mathematics", world.east)
    occupant = _period(db_session, world, maths)
    biology = _assignment(db_session, world, world.peter, "Biology", world.east)
    parked = _period(db_session, world, biology, is_active=False)
    _period(db_session, world, biology, day="Friday", number=1)
    db_session.commit()

    flagged = refresh_conflict_flags(db_session, world.academic_year.id, world.term.id)

    assert flagged == 2
    assert occupant.has_conflict and occupant.conflicting_periods == [parked.id]
    assert parked.has_conflict and parked.conflicting_periods == [occupant.id]


def test_refresh_clears_flags_of_inactive_assignments(db_session, world):
    maths = _assignment(db_session, world, world.jane, "Mathematics", world.east)
    occupant = _period(db_session, world, maths)
    biology = _assignment(db_session, world, world.peter, "Biology", world.east)
    parked = _period(db_session, world, biology, is_active=False)
    db_session.commit()
    refresh_conflict_flags(db_session, world.academic_year.id, world.term.id)

    maths.is_active = False
    occupant.is_active = False
    db_session.commit()
    flagged = refresh_conflict_flags(db_session, world.academic_year.id, world.term.id)

    assert flagged == 0
    assert not occupant.has_conflict
    assert not parked.has_conflict
    assert parked.conflicting_periods == []


def test_unique_index_violation_is_classified_by_axis(db_session, world):
    maths = _assignment(db_session, world, world.jane, "Mathematics", world.east)
    occupant = _period(db_session, world, maths)
    physics = _assignment(db_session, world, world.jane, "Physics", world.west)
    db_session.commit()

    duplicate = TimetablePeriod(
        teacher_id=world.jane.id,
        subject_assignment_id=physics.id,
        classroom_id=world.west.id,
        academic_year_id=world.academic_year.id,
        term_id=world.term.id,
        day_of_week="Monday",
        period_number=3,
    )
    db_session.add(duplicate)
    with pytest.raises(IntegrityError) as exc_info:
        db_session.flush()
    db_session.rollback()

    error = classify_integrity_error(
        db_session,
        exc_info.value,
        teacher_id=world.jane.id,
        academic_year_id=world.academic_year.id,
        term_id=world.term.id,
        slots=[("Monday", 3)],
        classroom_id=world.west.id,
    )

    assert isinstance(error, SlotConflictError)
    assert error.details["axis"] == "teacher"
    assert error.details["occupant_period_id"] == occupant.id
