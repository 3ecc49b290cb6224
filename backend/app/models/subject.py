import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    code: Mapped[str | None] = mapped_column(String(30), nullable=True)
    curriculum_type: Mapped[str] = mapped_column(String(20), nullable=False, default="CBC")
    level: Mapped[str] = mapped_column(String(60), nullable=False)
    grade_level: Mapped[str | None] = mapped_column(String(30), nullable=True)
    pathway: Mapped[str | None] = mapped_column(String(60), nullable=True)
    category: Mapped[str | None] = mapped_column(String(60), nullable=True)
    is_core: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    min_weekly_periods: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_weekly_periods: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
