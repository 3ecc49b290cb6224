import pytest

from app.core.exceptions import WorkloadExceededError
from app.models.assignment import SubjectAssignment
from app.services.workload import current_load, projected_load, workload_report, workload_status


def _assign(db, world, subject, classroom, weekly_periods, *, is_active=True):
    assignment = SubjectAssignment(
        school_id=world.school.id,
        teacher_id=world.jane.id,
        subject_id=world.subjects[subject].id,
        academic_year_id=world.academic_year.id,
        term_id=world.term.id,
        classroom_id=classroom.id,
        weekly_periods=weekly_periods,
        is_active=is_active,
    )
    db.add(assignment)
    db.commit()
    return assignment


def test_current_load_counts_active_assignments_only(db_session, world):
    _assign(db_session, world, "Mathematics", world.east, 10)
    _assign(db_session, world, "Physics", world.east, 5, is_active=False)

    assert current_load(db_session, world.jane.id, world.academic_year.id, world.term.id) == 10


def test_projection_reaching_the_maximum_is_allowed(db_session, world):
    _assign(db_session, world, "Mathematics", world.east, 10)
    _assign(db_session, world, "Mathematics", world.west, 10)
    _assign(db_session, world, "Physics", world.east, 2)

    projection = projected_load(db_session, world.jane, world.academic_year.id, world.term.id, 5)

    assert projection.proposed_total == 27
    assert projection.within_bounds
    assert projection.available_capacity == 0
    projection.raise_if_exceeded()


def test_projection_over_the_maximum_is_rejected(db_session, world):
    _assign(db_session, world, "Mathematics", world.east, 10)
    _assign(db_session, world, "Mathematics", world.west, 10)
    _assign(db_session, world, "Physics", world.east, 5)

    projection = projected_load(db_session, world.jane, world.academic_year.id, world.term.id, 3)

    assert projection.proposed_total == 28
    assert not projection.within_bounds
    with pytest.raises(WorkloadExceededError) as exc_info:
        projection.raise_if_exceeded()
    assert exc_info.value.details["current"] == 25
    assert exc_info.value.details["proposed"] == 28
    assert exc_info.value.details["max"] == 27


def test_projection_flags_below_minimum(db_session, world):
    projection = projected_load(db_session, world.jane, world.academic_year.id, world.term.id, 5)

    assert projection.within_bounds
    assert projection.below_minimum


def test_workload_report_breakdown(db_session, world):
    _assign(db_session, world, "Mathematics", world.east, 8)
    _assign(db_session, world, "Physics", world.west, 6)

    report = workload_report(db_session, world.jane, world.academic_year.id, world.term.id)

    assert report["total"] == 14
    assert report["min"] == 20
    assert report["max"] == 27
    assert report["within_bounds"] is True
    assert report["status"] == "underloaded"
    assert report["available_capacity"] == 13
    assert report["percentage_used"] == 51.9
    assert report["subject_count"] == 2
    assert report["assignment_count"] == 2
    assert {(line["subject"], line["target"]) for line in report["assignments"]} == {
        ("Mathematics", "Form 3 East"),
        ("Physics", "Form 3 West"),
    }


def test_workload_status_bands():
    assert workload_status(28, 20, 27) == "overloaded"
    assert workload_status(19, 20, 27) == "underloaded"
    assert workload_status(20, 20, 27) == "optimal"
    assert workload_status(27, 20, 27) == "optimal"
