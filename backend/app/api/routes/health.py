from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.db.bootstrap import REQUIRED_COLUMNS, TIMETABLE_UNIQUE_INDEXES
from app.services.combination_registry import registry

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/health/live")
def health_live() -> dict:
    return {"status": "ok", "timestamp": _now()}


def _schema_gaps(connection) -> tuple[list[str], dict[str, list[str]], list[str]]:
    inspector = inspect(connection)
    tables = set(inspector.get_table_names())
    missing_tables = sorted(name for name in REQUIRED_COLUMNS if name not in tables)
    missing_columns: dict[str, list[str]] = {}
    for table_name, columns in REQUIRED_COLUMNS.items():
        if table_name not in tables:
            continue
        gap = sorted(columns - {item["name"] for item in inspector.get_columns(table_name)})
        if gap:
            missing_columns[table_name] = gap

    # Without these indexes concurrent writers could double-book a slot.
    missing_indexes: list[str] = []
    if "timetable_periods" in tables:
        present = {item["name"] for item in inspector.get_indexes("timetable_periods")}
        missing_indexes = sorted(name for name in TIMETABLE_UNIQUE_INDEXES if name not in present)
    return missing_tables, missing_columns, missing_indexes


@router.get("/health/ready")
def health_ready(db: Session = Depends(get_db)) -> JSONResponse:
    database = {"ok": True, "error": None}
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}
    missing_indexes: list[str] = []
    try:
        connection = db.connection()
        connection.execute(text("SELECT 1"))
        missing_tables, missing_columns, missing_indexes = _schema_gaps(connection)
    except SQLAlchemyError as exc:  # pragma: no cover - environment dependent
        database = {"ok": False, "error": str(exc)}

    schema_ok = not (missing_tables or missing_columns or missing_indexes)
    ready = database["ok"] and schema_ok
    payload = {
        "status": "ok" if ready else "degraded",
        "timestamp": _now(),
        "database": {
            **database,
            "schema_ok": schema_ok,
            "missing_tables": missing_tables,
            "missing_columns": missing_columns,
            "missing_slot_indexes": missing_indexes,
        },
        "combination_registry": registry.describe(),
    }
    return JSONResponse(status_code=200 if ready else 503, content=payload)
