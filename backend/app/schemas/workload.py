from pydantic import BaseModel, Field


class WorkloadAssignmentLine(BaseModel):
    assignment_id: str
    subject_id: str
    subject: str
    target: str
    weekly_periods: int
    assignment_type: str


class WorkloadReportOut(BaseModel):
    teacher_id: str
    academic_year_id: str
    term_id: str
    total: int
    min: int
    max: int
    within_bounds: bool
    status: str
    available_capacity: int
    percentage_used: float
    subject_count: int
    assignment_count: int
    assignments: list[WorkloadAssignmentLine] = Field(default_factory=list)
