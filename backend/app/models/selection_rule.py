import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.db.base import Base


class RuleType(str, Enum):
    required_subject = "required_subject"
    min_count = "min_count"
    max_count = "max_count"
    incompatible_pair = "incompatible_pair"


class SubjectSelectionRule(Base):
    __tablename__ = "subject_selection_rules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    curriculum_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    level: Mapped[str] = mapped_column(String(60), nullable=False, index=True)
    # None applies the rule to every pathway of the level.
    pathway: Mapped[str | None] = mapped_column(String(60), nullable=True)
    rule_type: Mapped[RuleType] = mapped_column(SAEnum(RuleType, name="selection_rule_type"), nullable=False)
    subject_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    min_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    pairs: Mapped[list["IncompatibleSubjectPair"]] = relationship(
        back_populates="rule",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class IncompatibleSubjectPair(Base):
    __tablename__ = "incompatible_subject_pairs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    rule_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("subject_selection_rules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    first_subject_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False
    )
    second_subject_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False
    )

    rule: Mapped[SubjectSelectionRule] = relationship(back_populates="pairs")
