from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.core.exceptions import InvalidAssignmentTargetError, ResourceNotFoundError
from app.models.academic_year import AcademicYear, Term
from app.models.school import Classroom, School, Stream


@dataclass(frozen=True)
class SchedulingScope:
    """Per-request scheduling context passed to every engine call."""

    school_id: str
    uses_streams: bool
    primary_curriculum: str = "CBC"

    @property
    def target_kind(self) -> str:
        return "stream" if self.uses_streams else "classroom"


def resolve_scope(db: Session, school_id: str) -> SchedulingScope:
    school = db.get(School, school_id)
    if school is None:
        raise ResourceNotFoundError("School", school_id)
    return SchedulingScope(
        school_id=school.id,
        uses_streams=bool(school.uses_streams),
        primary_curriculum=school.primary_curriculum,
    )


@dataclass(frozen=True)
class AssignmentTarget:
    classroom_id: str | None
    stream_id: str | None
    name: str
    level: str
    pathway: str | None

    @property
    def kind(self) -> str:
        return "stream" if self.stream_id else "classroom"

    @property
    def id(self) -> str:
        return self.stream_id or self.classroom_id


def get_school_resource(db: Session, scope: SchedulingScope, model, resource_id: str, label: str):
    """Load a school-owned row, treating rows of other schools as missing."""
    item = db.get(model, resource_id)
    if item is None or getattr(item, "school_id", None) != scope.school_id:
        raise ResourceNotFoundError(label, resource_id)
    return item


def resolve_target(
    db: Session,
    scope: SchedulingScope,
    *,
    classroom_id: str | None = None,
    stream_id: str | None = None,
) -> AssignmentTarget:
    if bool(classroom_id) == bool(stream_id):
        raise InvalidAssignmentTargetError(
            "Exactly one of classroom_id or stream_id is required",
            details={"classroom_id": classroom_id, "stream_id": stream_id},
        )
    if scope.uses_streams and not stream_id:
        raise InvalidAssignmentTargetError(
            "This school schedules by stream; provide stream_id",
            details={"expected_target": "stream", "uses_streams": True},
        )
    if not scope.uses_streams and not classroom_id:
        raise InvalidAssignmentTargetError(
            "This school schedules by classroom; provide classroom_id",
            details={"expected_target": "classroom", "uses_streams": False},
        )

    if stream_id:
        stream = get_school_resource(db, scope, Stream, stream_id, "Stream")
        classroom = db.get(Classroom, stream.classroom_id)
        if classroom is None:
            raise ResourceNotFoundError("Classroom", stream.classroom_id)
        return AssignmentTarget(
            classroom_id=None,
            stream_id=stream.id,
            name=f"{classroom.name} {stream.name}",
            level=classroom.level,
            pathway=stream.pathway or classroom.pathway,
        )

    classroom = get_school_resource(db, scope, Classroom, classroom_id, "Classroom")
    return AssignmentTarget(
        classroom_id=classroom.id,
        stream_id=None,
        name=classroom.name,
        level=classroom.level,
        pathway=classroom.pathway,
    )


def resolve_term(
    db: Session, scope: SchedulingScope, academic_year_id: str, term_id: str
) -> tuple[AcademicYear, Term]:
    academic_year = get_school_resource(db, scope, AcademicYear, academic_year_id, "AcademicYear")
    term = db.get(Term, term_id)
    if term is None or term.academic_year_id != academic_year.id:
        raise ResourceNotFoundError("Term", term_id)
    return academic_year, term
