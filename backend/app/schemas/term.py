from datetime import datetime

from pydantic import BaseModel


class TermFinalizeOut(BaseModel):
    term_id: str
    academic_year_id: str
    is_finalized: bool
    finalized_at: datetime | None = None
    finalized_by_id: str | None = None
    teacher_count: int
    period_count: int
