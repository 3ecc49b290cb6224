import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class AssignmentType(str, Enum):
    main_teacher = "main_teacher"
    assistant_teacher = "assistant_teacher"
    substitute = "substitute"


class SubjectAssignment(Base):
    __tablename__ = "subject_assignments"
    __table_args__ = (
        UniqueConstraint(
            "teacher_id",
            "subject_id",
            "academic_year_id",
            "term_id",
            "classroom_id",
            name="uq_assignment_classroom",
        ),
        UniqueConstraint(
            "teacher_id",
            "subject_id",
            "academic_year_id",
            "term_id",
            "stream_id",
            name="uq_assignment_stream",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True
    )
    teacher_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    academic_year_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False, index=True
    )
    term_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("terms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Exactly one of classroom_id / stream_id is set, depending on the school's scheduling mode.
    classroom_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=True, index=True
    )
    stream_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("streams.id", ondelete="CASCADE"), nullable=True, index=True
    )
    weekly_periods: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    assignment_type: Mapped[AssignmentType] = mapped_column(
        SAEnum(AssignmentType, name="assignment_type"),
        nullable=False,
        default=AssignmentType.main_teacher,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    batch_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    is_bulk_assignment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    deactivated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deactivated_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
