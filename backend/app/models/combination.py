import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class InstitutionType(str, Enum):
    university = "university"
    teacher_training_college = "teacher_training_college"
    technical_university = "technical_university"


class TeacherCombination(Base):
    """A recognised B.Ed / diploma subject combination.

    ``primary_subjects`` and ``derived_subjects`` hold subject names. They are
    resolved to subject ids when the combination registry loads.
    """

    __tablename__ = "teacher_combinations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code: Mapped[str] = mapped_column(String(60), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    degree_title: Mapped[str] = mapped_column(String(255), nullable=False)
    degree_abbreviation: Mapped[str] = mapped_column(String(60), nullable=False)
    institution_type: Mapped[InstitutionType] = mapped_column(
        SAEnum(InstitutionType, name="institution_type"),
        nullable=False,
        default=InstitutionType.university,
    )
    subject_group: Mapped[str] = mapped_column(String(60), nullable=False, index=True)
    primary_subjects: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    derived_subjects: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    eligible_levels: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    eligible_pathways: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    curriculum_types: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    tsc_recognized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
