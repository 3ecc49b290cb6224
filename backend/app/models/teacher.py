import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class Teacher(Base):
    __tablename__ = "teachers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    tsc_number: Mapped[str | None] = mapped_column(String(30), nullable=True)
    combination_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("teacher_combinations.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # Snapshot of the combination, kept if the combination row goes away.
    combination_code: Mapped[str | None] = mapped_column(String(60), nullable=True, index=True)
    combination_label: Mapped[str | None] = mapped_column(String(120), nullable=True)
    graduation_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    institution_type: Mapped[str | None] = mapped_column(String(40), nullable=True)
    awarding_institution: Mapped[str | None] = mapped_column(String(150), nullable=True)
    min_weekly_lessons: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    max_weekly_lessons: Mapped[int] = mapped_column(Integer, nullable=False, default=27)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
