from __future__ import annotations

from sqlalchemy.orm import Session

from app.core.security import Actor
from app.models.activity_log import ActivityLog


def log_activity(
    db: Session,
    *,
    actor: Actor | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    details: dict | None = None,
    school_id: str | None = None,
) -> None:
    record = ActivityLog(
        school_id=school_id if school_id is not None else (actor.school_id if actor is not None else None),
        actor_id=actor.id if actor is not None else None,
        actor_role=actor.role.value if actor is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    )
    db.add(record)
