from pydantic import BaseModel, Field


class RuleViolationOut(BaseModel):
    rule_id: str | None = None
    rule_type: str
    message: str
    missing_subject_ids: list[str] | None = None
    shortfall: int | None = None
    excess: int | None = None
    pair: list[str] | None = None


class AssignedSubjectOut(BaseModel):
    id: str
    name: str


class ComplianceReportOut(BaseModel):
    target_kind: str
    target_id: str
    target_name: str
    academic_year_id: str
    term_id: str
    curriculum_type: str
    level: str
    pathway: str | None = None
    assigned_subjects: list[AssignedSubjectOut] = Field(default_factory=list)
    compliant: bool
    violations: list[RuleViolationOut] = Field(default_factory=list)
