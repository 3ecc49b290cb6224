from datetime import datetime

from pydantic import BaseModel, Field

from app.models.approval import ApprovalStatus


class DerivedSubjectRequest(BaseModel):
    teacher_id: str = Field(min_length=1, max_length=36)
    subject_id: str = Field(min_length=1, max_length=36)
    note: str | None = Field(default=None, max_length=1000)


class DerivedSubjectApprovalOut(BaseModel):
    id: str
    teacher_id: str
    subject_id: str
    status: ApprovalStatus
    requested_by_id: str | None = None
    requested_at: datetime | None = None
    approved_by_id: str | None = None
    approved_at: datetime | None = None
    note: str | None = None

    model_config = {"from_attributes": True}
