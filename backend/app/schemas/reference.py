from __future__ import annotations

from datetime import date, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator

from app.models.combination import InstitutionType
from app.models.selection_rule import RuleType

LEVEL_VALUES = {
    "Pre-Primary",
    "Primary",
    "Junior Secondary",
    "Senior Secondary",
    "Secondary (8-4-4)",
}
CURRICULUM_VALUES = {"CBC", "8-4-4"}

# Rule names used by older curriculum configuration.
LEGACY_RULE_TYPES = {
    "max_sciences": RuleType.max_count.value,
    "min_languages": RuleType.min_count.value,
    "incompatible_subjects": RuleType.incompatible_pair.value,
}


def _validate_level(value: str) -> str:
    if value not in LEVEL_VALUES:
        raise ValueError(f"Unknown level: {value}")
    return value


def _validate_curriculum(value: str) -> str:
    if value not in CURRICULUM_VALUES:
        raise ValueError(f"Unknown curriculum type: {value}")
    return value


Level = Annotated[str, AfterValidator(_validate_level)]
Curriculum = Annotated[str, AfterValidator(_validate_curriculum)]


class SchoolCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    uses_streams: bool = False
    primary_curriculum: Curriculum = "CBC"


class SchoolOut(BaseModel):
    id: str
    name: str
    uses_streams: bool
    primary_curriculum: str

    model_config = {"from_attributes": True}


class ClassroomCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    level: Level
    grade_level: str | None = Field(default=None, max_length=30)
    pathway: str | None = Field(default=None, max_length=60)


class ClassroomOut(BaseModel):
    id: str
    school_id: str
    name: str
    level: str
    grade_level: str | None = None
    pathway: str | None = None

    model_config = {"from_attributes": True}


class StreamCreate(BaseModel):
    classroom_id: str = Field(min_length=1, max_length=36)
    name: str = Field(min_length=1, max_length=100)
    pathway: str | None = Field(default=None, max_length=60)


class StreamOut(BaseModel):
    id: str
    school_id: str
    classroom_id: str
    name: str
    pathway: str | None = None

    model_config = {"from_attributes": True}


class AcademicYearCreate(BaseModel):
    year: int = Field(ge=2000, le=2100)
    curriculum_type: Curriculum = "CBC"
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool = True

    @model_validator(mode="after")
    def validate_dates(self) -> "AcademicYearCreate":
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class AcademicYearOut(BaseModel):
    id: str
    school_id: str
    year: int
    curriculum_type: str
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool

    model_config = {"from_attributes": True}


class TermCreate(BaseModel):
    academic_year_id: str = Field(min_length=1, max_length=36)
    name: str = Field(min_length=1, max_length=30)
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool = True


class TermOut(BaseModel):
    id: str
    academic_year_id: str
    name: str
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool
    is_finalized: bool
    finalized_at: datetime | None = None
    finalized_by_id: str | None = None

    model_config = {"from_attributes": True}


class SubjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    code: str | None = Field(default=None, max_length=30)
    curriculum_type: Curriculum = "CBC"
    level: Level
    grade_level: str | None = Field(default=None, max_length=30)
    pathway: str | None = Field(default=None, max_length=60)
    category: str | None = Field(default=None, max_length=60)
    is_core: bool = False
    min_weekly_periods: int = Field(default=1, ge=0, le=40)
    max_weekly_periods: int = Field(default=10, ge=1, le=40)

    @model_validator(mode="after")
    def validate_period_bounds(self) -> "SubjectCreate":
        if self.min_weekly_periods > self.max_weekly_periods:
            raise ValueError("min_weekly_periods cannot exceed max_weekly_periods")
        return self


class SubjectOut(BaseModel):
    id: str
    school_id: str
    name: str
    code: str | None = None
    curriculum_type: str
    level: str
    grade_level: str | None = None
    pathway: str | None = None
    category: str | None = None
    is_core: bool
    min_weekly_periods: int
    max_weekly_periods: int

    model_config = {"from_attributes": True}


class TeacherCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    tsc_number: str | None = Field(default=None, max_length=30)
    combination_id: str | None = Field(default=None, max_length=36)
    graduation_year: int | None = Field(default=None, ge=1950, le=2100)
    institution_type: InstitutionType | None = None
    awarding_institution: str | None = Field(default=None, max_length=150)
    min_weekly_lessons: int | None = Field(default=None, ge=0, le=60)
    max_weekly_lessons: int | None = Field(default=None, ge=1, le=60)


class TeacherUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    combination_id: str | None = Field(default=None, max_length=36)
    graduation_year: int | None = Field(default=None, ge=1950, le=2100)
    institution_type: InstitutionType | None = None
    awarding_institution: str | None = Field(default=None, max_length=150)
    min_weekly_lessons: int | None = Field(default=None, ge=0, le=60)
    max_weekly_lessons: int | None = Field(default=None, ge=1, le=60)
    is_active: bool | None = None


class TeacherOut(BaseModel):
    id: str
    school_id: str
    name: str
    tsc_number: str | None = None
    combination_id: str | None = None
    combination_code: str | None = None
    combination_label: str | None = None
    graduation_year: int | None = None
    institution_type: str | None = None
    awarding_institution: str | None = None
    min_weekly_lessons: int
    max_weekly_lessons: int
    is_active: bool

    model_config = {"from_attributes": True}


class CombinationBase(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    degree_title: str = Field(min_length=1, max_length=255)
    degree_abbreviation: str = Field(min_length=1, max_length=60)
    institution_type: InstitutionType = InstitutionType.university
    subject_group: str = Field(min_length=1, max_length=60)
    primary_subjects: list[str] = Field(default_factory=list, max_length=20)
    derived_subjects: list[str] = Field(default_factory=list, max_length=20)
    eligible_levels: list[str] = Field(default_factory=list)
    eligible_pathways: list[str] = Field(default_factory=list)
    curriculum_types: list[str] = Field(default_factory=lambda: ["CBC"])
    tsc_recognized: bool = True
    is_active: bool = True
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("eligible_levels")
    @classmethod
    def validate_levels(cls, value: list[str]) -> list[str]:
        return [_validate_level(item) for item in value]

    @field_validator("curriculum_types")
    @classmethod
    def validate_curricula(cls, value: list[str]) -> list[str]:
        return [_validate_curriculum(item) for item in value]

    @field_validator("primary_subjects", "derived_subjects")
    @classmethod
    def strip_names(cls, value: list[str]) -> list[str]:
        return [item.strip() for item in value if item.strip()]


class CombinationCreate(CombinationBase):
    code: str = Field(min_length=1, max_length=60)


class CombinationUpdate(CombinationBase):
    pass


class CombinationOut(CombinationBase):
    id: str
    code: str

    model_config = {"from_attributes": True}


class CombinationPreviewSubject(BaseModel):
    subject_id: str
    name: str
    level: str
    pathway: str | None = None
    grant_kind: str


class CombinationPreviewOut(BaseModel):
    combination_id: str
    code: str
    subjects: list[CombinationPreviewSubject] = Field(default_factory=list)
    unmatched_names: list[str] = Field(default_factory=list)


class SelectionRuleCreate(BaseModel):
    curriculum_type: Curriculum
    level: Level
    pathway: str | None = Field(default=None, max_length=60)
    rule_type: RuleType
    subject_ids: list[str] = Field(default_factory=list)
    min_count: int | None = Field(default=None, ge=0)
    max_count: int | None = Field(default=None, ge=0)
    pairs: list[tuple[str, str]] = Field(default_factory=list)
    description: str = Field(default="", max_length=1000)
    is_active: bool = True

    @field_validator("rule_type", mode="before")
    @classmethod
    def map_legacy_rule_type(cls, value):
        if isinstance(value, str):
            return LEGACY_RULE_TYPES.get(value, value)
        return value

    @model_validator(mode="after")
    def validate_bounds(self) -> "SelectionRuleCreate":
        if self.rule_type == RuleType.min_count and self.min_count is None:
            raise ValueError("min_count rules need a min_count")
        if self.rule_type == RuleType.max_count and self.max_count is None:
            raise ValueError("max_count rules need a max_count")
        if self.rule_type == RuleType.incompatible_pair and not self.pairs and len(self.subject_ids) != 2:
            raise ValueError("incompatible_pair rules need pairs or exactly two subject_ids")
        if self.rule_type != RuleType.incompatible_pair and not self.subject_ids:
            raise ValueError("subject_ids cannot be empty")
        return self


class IncompatiblePairOut(BaseModel):
    first_subject_id: str
    second_subject_id: str

    model_config = {"from_attributes": True}


class SelectionRuleOut(BaseModel):
    id: str
    curriculum_type: str
    level: str
    pathway: str | None = None
    rule_type: RuleType
    subject_ids: list[str]
    min_count: int | None = None
    max_count: int | None = None
    description: str
    is_active: bool
    pairs: list[IncompatiblePairOut] = Field(default_factory=list)

    model_config = {"from_attributes": True}
