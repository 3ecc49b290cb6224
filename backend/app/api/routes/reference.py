import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import ADMIN_ONLY, ANY_ROLE, get_db, get_scope, require_roles
from app.core.config import get_settings
from app.core.exceptions import AppError, ResourceNotFoundError
from app.core.security import Actor
from app.models.academic_year import AcademicYear, Term
from app.models.combination import TeacherCombination
from app.models.school import Classroom, School, Stream
from app.models.selection_rule import IncompatibleSubjectPair, SubjectSelectionRule
from app.models.subject import Subject
from app.models.teacher import Teacher
from app.schemas.reference import (
    AcademicYearCreate,
    AcademicYearOut,
    ClassroomCreate,
    ClassroomOut,
    CombinationCreate,
    CombinationOut,
    CombinationPreviewOut,
    CombinationUpdate,
    SchoolCreate,
    SchoolOut,
    SelectionRuleCreate,
    SelectionRuleOut,
    StreamCreate,
    StreamOut,
    SubjectCreate,
    SubjectOut,
    TeacherCreate,
    TeacherOut,
    TeacherUpdate,
    TermCreate,
    TermOut,
)
from app.services.combination_registry import preview_combination, registry
from app.services.scope import SchedulingScope, get_school_resource

logger = logging.getLogger(__name__)

router = APIRouter()

TEACHER_REQUIRED_FIELDS = ("name", "min_weekly_lessons", "max_weekly_lessons", "is_active")


def _apply_combination_snapshot(db: Session, teacher: Teacher, combination_id: str | None) -> None:
    if combination_id is None:
        teacher.combination_id = None
        return
    combination = db.get(TeacherCombination, combination_id)
    if combination is None or not combination.is_active:
        raise ResourceNotFoundError("TeacherCombination", combination_id)
    teacher.combination_id = combination.id
    teacher.combination_code = combination.code
    teacher.combination_label = combination.name


@router.post("/schools", response_model=SchoolOut, status_code=status.HTTP_201_CREATED)
def create_school(
    payload: SchoolCreate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(require_roles(*ADMIN_ONLY)),
) -> SchoolOut:
    school = School(**payload.model_dump())
    db.add(school)
    db.commit()
    db.refresh(school)
    return SchoolOut.model_validate(school)


@router.get("/schools/current", response_model=SchoolOut)
def get_current_school(
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> SchoolOut:
    return SchoolOut.model_validate(db.get(School, scope.school_id))


@router.post("/classrooms", response_model=ClassroomOut, status_code=status.HTTP_201_CREATED)
def create_classroom(
    payload: ClassroomCreate,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ADMIN_ONLY)),
) -> ClassroomOut:
    classroom = Classroom(school_id=scope.school_id, **payload.model_dump())
    db.add(classroom)
    db.commit()
    db.refresh(classroom)
    return ClassroomOut.model_validate(classroom)


@router.get("/classrooms", response_model=list[ClassroomOut])
def list_classrooms(
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> list[ClassroomOut]:
    rows = db.execute(
        select(Classroom).where(Classroom.school_id == scope.school_id).order_by(Classroom.name)
    ).scalars()
    return [ClassroomOut.model_validate(item) for item in rows]


@router.post("/streams", response_model=StreamOut, status_code=status.HTTP_201_CREATED)
def create_stream(
    payload: StreamCreate,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ADMIN_ONLY)),
) -> StreamOut:
    get_school_resource(db, scope, Classroom, payload.classroom_id, "Classroom")
    stream = Stream(school_id=scope.school_id, **payload.model_dump())
    db.add(stream)
    db.commit()
    db.refresh(stream)
    return StreamOut.model_validate(stream)


@router.get("/streams", response_model=list[StreamOut])
def list_streams(
    classroom_id: str | None = Query(default=None, max_length=36),
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> list[StreamOut]:
    stmt = select(Stream).where(Stream.school_id == scope.school_id)
    if classroom_id:
        stmt = stmt.where(Stream.classroom_id == classroom_id)
    return [StreamOut.model_validate(item) for item in db.execute(stmt.order_by(Stream.name)).scalars()]


@router.post("/academic-years", response_model=AcademicYearOut, status_code=status.HTTP_201_CREATED)
def create_academic_year(
    payload: AcademicYearCreate,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ADMIN_ONLY)),
) -> AcademicYearOut:
    academic_year = AcademicYear(school_id=scope.school_id, **payload.model_dump())
    db.add(academic_year)
    db.commit()
    db.refresh(academic_year)
    return AcademicYearOut.model_validate(academic_year)


@router.get("/academic-years", response_model=list[AcademicYearOut])
def list_academic_years(
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> list[AcademicYearOut]:
    rows = db.execute(
        select(AcademicYear).where(AcademicYear.school_id == scope.school_id).order_by(AcademicYear.year.desc())
    ).scalars()
    return [AcademicYearOut.model_validate(item) for item in rows]


@router.post("/terms", response_model=TermOut, status_code=status.HTTP_201_CREATED)
def create_term(
    payload: TermCreate,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ADMIN_ONLY)),
) -> TermOut:
    get_school_resource(db, scope, AcademicYear, payload.academic_year_id, "AcademicYear")
    term = Term(**payload.model_dump())
    db.add(term)
    db.commit()
    db.refresh(term)
    return TermOut.model_validate(term)


@router.get("/terms", response_model=list[TermOut])
def list_terms(
    academic_year_id: str = Query(min_length=1, max_length=36),
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> list[TermOut]:
    get_school_resource(db, scope, AcademicYear, academic_year_id, "AcademicYear")
    rows = db.execute(select(Term).where(Term.academic_year_id == academic_year_id).order_by(Term.name)).scalars()
    return [TermOut.model_validate(item) for item in rows]


@router.post("/subjects", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(
    payload: SubjectCreate,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ADMIN_ONLY)),
) -> SubjectOut:
    subject = Subject(school_id=scope.school_id, **payload.model_dump())
    db.add(subject)
    db.commit()
    db.refresh(subject)
    registry.invalidate()
    return SubjectOut.model_validate(subject)


@router.get("/subjects", response_model=list[SubjectOut])
def list_subjects(
    level: str | None = Query(default=None, max_length=60),
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> list[SubjectOut]:
    stmt = select(Subject).where(Subject.school_id == scope.school_id)
    if level:
        stmt = stmt.where(Subject.level == level)
    return [SubjectOut.model_validate(item) for item in db.execute(stmt.order_by(Subject.name)).scalars()]


@router.post("/teachers", response_model=TeacherOut, status_code=status.HTTP_201_CREATED)
def create_teacher(
    payload: TeacherCreate,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ADMIN_ONLY)),
) -> TeacherOut:
    settings = get_settings()
    data = payload.model_dump(mode="json", exclude={"combination_id", "min_weekly_lessons", "max_weekly_lessons"})
    teacher = Teacher(
        school_id=scope.school_id,
        min_weekly_lessons=payload.min_weekly_lessons
        if payload.min_weekly_lessons is not None
        else settings.default_min_weekly_lessons,
        max_weekly_lessons=payload.max_weekly_lessons
        if payload.max_weekly_lessons is not None
        else settings.default_max_weekly_lessons,
        **data,
    )
    _apply_combination_snapshot(db, teacher, payload.combination_id)
    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    return TeacherOut.model_validate(teacher)


@router.patch("/teachers/{teacher_id}", response_model=TeacherOut)
def update_teacher(
    teacher_id: str,
    payload: TeacherUpdate,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ADMIN_ONLY)),
) -> TeacherOut:
    teacher = get_school_resource(db, scope, Teacher, teacher_id, "Teacher")
    data = payload.model_dump(mode="json", exclude_unset=True)
    cleared = sorted(key for key in TEACHER_REQUIRED_FIELDS if key in data and data[key] is None)
    if cleared:
        raise AppError(
            "These teacher fields cannot be cleared",
            status_code=422,
            details={"fields": cleared},
        )
    if "combination_id" in data:
        _apply_combination_snapshot(db, teacher, data.pop("combination_id"))
    for key, value in data.items():
        setattr(teacher, key, value)
    if teacher.min_weekly_lessons > teacher.max_weekly_lessons:
        raise AppError(
            "min_weekly_lessons cannot exceed max_weekly_lessons",
            status_code=422,
            details={"min": teacher.min_weekly_lessons, "max": teacher.max_weekly_lessons},
        )
    db.commit()
    db.refresh(teacher)
    return TeacherOut.model_validate(teacher)


@router.get("/teachers", response_model=list[TeacherOut])
def list_teachers(
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> list[TeacherOut]:
    rows = db.execute(select(Teacher).where(Teacher.school_id == scope.school_id).order_by(Teacher.name)).scalars()
    return [TeacherOut.model_validate(item) for item in rows]


@router.post("/combinations", response_model=CombinationOut, status_code=status.HTTP_201_CREATED)
def create_combination(
    payload: CombinationCreate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(require_roles(*ADMIN_ONLY)),
) -> CombinationOut:
    combination = TeacherCombination(**payload.model_dump())
    db.add(combination)
    db.commit()
    db.refresh(combination)
    registry.invalidate()
    logger.info("Teacher combination %s created by %s", combination.code, current_actor.id)
    return CombinationOut.model_validate(combination)


@router.put("/combinations/{combination_id}", response_model=CombinationOut)
def update_combination(
    combination_id: str,
    payload: CombinationUpdate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(require_roles(*ADMIN_ONLY)),
) -> CombinationOut:
    combination = db.get(TeacherCombination, combination_id)
    if combination is None:
        raise ResourceNotFoundError("TeacherCombination", combination_id)
    for key, value in payload.model_dump().items():
        setattr(combination, key, value)
    db.commit()
    db.refresh(combination)
    registry.invalidate()
    logger.info("Teacher combination %s updated by %s", combination.code, current_actor.id)
    return CombinationOut.model_validate(combination)


@router.get("/combinations", response_model=list[CombinationOut])
def list_combinations(
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> list[CombinationOut]:
    stmt = select(TeacherCombination)
    if not include_inactive:
        stmt = stmt.where(TeacherCombination.is_active.is_(True))
    rows = db.execute(stmt.order_by(TeacherCombination.code)).scalars()
    return [CombinationOut.model_validate(item) for item in rows]


@router.get("/combinations/{combination_id}/preview", response_model=CombinationPreviewOut)
def get_combination_preview(
    combination_id: str,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> CombinationPreviewOut:
    combination = db.get(TeacherCombination, combination_id)
    if combination is None:
        raise ResourceNotFoundError("TeacherCombination", combination_id)
    return CombinationPreviewOut.model_validate(preview_combination(db, combination, scope.school_id))


@router.post("/selection-rules", response_model=SelectionRuleOut, status_code=status.HTTP_201_CREATED)
def create_selection_rule(
    payload: SelectionRuleCreate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(require_roles(*ADMIN_ONLY)),
) -> SelectionRuleOut:
    rule = SubjectSelectionRule(**payload.model_dump(exclude={"pairs"}))
    rule.pairs = [
        IncompatibleSubjectPair(first_subject_id=first, second_subject_id=second) for first, second in payload.pairs
    ]
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return SelectionRuleOut.model_validate(rule)


@router.get("/selection-rules", response_model=list[SelectionRuleOut])
def list_selection_rules(
    curriculum_type: str | None = Query(default=None, max_length=20),
    level: str | None = Query(default=None, max_length=60),
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(require_roles(*ANY_ROLE)),
) -> list[SelectionRuleOut]:
    stmt = select(SubjectSelectionRule)
    if curriculum_type:
        stmt = stmt.where(SubjectSelectionRule.curriculum_type == curriculum_type)
    if level:
        stmt = stmt.where(SubjectSelectionRule.level == level)
    rows = db.execute(stmt.order_by(SubjectSelectionRule.created_at)).scalars()
    return [SelectionRuleOut.model_validate(item) for item in rows]
