from __future__ import annotations

import logging

from sqlalchemy import inspect, text

import app.models  # noqa: F401
from app.db.base import Base
from app.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "teacher_combinations": {"id", "code", "primary_subjects", "derived_subjects", "eligible_levels"},
    "teachers": {"id", "school_id", "combination_id", "min_weekly_lessons", "max_weekly_lessons"},
    "subjects": {"id", "school_id", "name", "level", "pathway", "curriculum_type"},
    "subject_assignments": {"id", "teacher_id", "subject_id", "term_id", "classroom_id", "stream_id", "is_active"},
    "timetable_periods": {"id", "teacher_id", "day_of_week", "period_number", "has_conflict", "is_active"},
    "derived_subject_approvals": {"id", "teacher_id", "subject_id", "status", "approved_by_id", "approved_at"},
}

# Partial unique indexes: only active periods occupy a slot.
TIMETABLE_UNIQUE_INDEXES: dict[str, str] = {
    "teacher_timetable_unique": "teacher_id",
    "classroom_timetable_unique": "classroom_id",
    "stream_timetable_unique": "stream_id",
}


def _ensure_assignment_batch_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "subject_assignments" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("subject_assignments")}
        if "batch_id" not in column_names:
            connection.execute(text("ALTER TABLE subject_assignments ADD COLUMN batch_id VARCHAR(36)"))
        if "is_bulk_assignment" not in column_names:
            default = "false" if connection.dialect.name == "postgresql" else "0"
            connection.execute(
                text(
                    "ALTER TABLE subject_assignments "
                    f"ADD COLUMN is_bulk_assignment BOOLEAN NOT NULL DEFAULT {default}"
                )
            )


def _ensure_timetable_unique_indexes() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "timetable_periods" not in set(inspector.get_table_names()):
            return
        existing = {item["name"] for item in inspector.get_indexes("timetable_periods")}
        active_predicate = "is_active" if connection.dialect.name == "postgresql" else "is_active = 1"
        for index_name, axis_column in TIMETABLE_UNIQUE_INDEXES.items():
            if index_name in existing:
                continue
            logger.warning("Creating missing timetable index %s", index_name)
            connection.execute(
                text(
                    f"CREATE UNIQUE INDEX IF NOT EXISTS {index_name} ON timetable_periods "
                    f"({axis_column}, academic_year_id, term_id, day_of_week, period_number) "
                    f"WHERE {active_predicate}"
                )
            )


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_runtime_schema_compatibility() -> None:
    try:
        # Ensure missing tables are present before additive compatibility patches.
        Base.metadata.create_all(bind=engine)
        _ensure_assignment_batch_columns()
        _ensure_timetable_unique_indexes()
        _assert_required_columns()
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
