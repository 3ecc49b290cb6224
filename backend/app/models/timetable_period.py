import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, JSON, String, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base

DAYS_OF_WEEK = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def _active_slot_index(name: str, axis_column: str) -> Index:
    return Index(
        name,
        axis_column,
        "academic_year_id",
        "term_id",
        "day_of_week",
        "period_number",
        unique=True,
        sqlite_where=text("is_active = 1"),
        postgresql_where=text("is_active"),
    )


class TimetablePeriod(Base):
    __tablename__ = "timetable_periods"
    # Only active periods occupy a slot. Parked override periods stay out of the indexes.
    __table_args__ = (
        _active_slot_index("teacher_timetable_unique", "teacher_id"),
        _active_slot_index("classroom_timetable_unique", "classroom_id"),
        _active_slot_index("stream_timetable_unique", "stream_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    teacher_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject_assignment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("subject_assignments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    classroom_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=True
    )
    stream_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("streams.id", ondelete="CASCADE"), nullable=True
    )
    academic_year_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False
    )
    term_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("terms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week: Mapped[str] = mapped_column(String(10), nullable=False)
    period_number: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    # Derived from occupancy by the conflict detector, never edited directly.
    has_conflict: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    conflicting_periods: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
