from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.models.combination import TeacherCombination
from app.models.subject import Subject

logger = logging.getLogger(__name__)

PATHWAY_LEVEL = "Senior Secondary"
NEUTRAL_PATHWAYS = {"", "all"}


class GrantKind(str, Enum):
    primary = "primary"
    derived = "derived"
    none = "none"


def normalize_subject_name(value: str | None) -> str:
    return (value or "").strip().lower()


def is_pathway_neutral(pathway: str | None) -> bool:
    return normalize_subject_name(pathway) in NEUTRAL_PATHWAYS


@dataclass(frozen=True)
class CombinationGrant:
    id: str
    code: str
    name: str
    primary_names: frozenset[str]
    derived_names: frozenset[str]
    primary_subject_ids: frozenset[str]
    derived_subject_ids: frozenset[str]
    eligible_levels: frozenset[str]
    eligible_pathways: frozenset[str]
    curriculum_types: frozenset[str]
    tsc_recognized: bool

    def grant_kind(self, subject: Subject) -> GrantKind:
        if subject.id in self.primary_subject_ids:
            return GrantKind.primary
        if subject.id in self.derived_subject_ids:
            return GrantKind.derived
        # Subjects created after the last load are still matched by name.
        name = normalize_subject_name(subject.name)
        if name in self.primary_names:
            return GrantKind.primary
        if name in self.derived_names:
            return GrantKind.derived
        return GrantKind.none

    def covers_level(self, level: str | None) -> bool:
        return bool(level) and level in self.eligible_levels

    def covers_pathway(self, level: str | None, pathway: str | None) -> bool:
        if level != PATHWAY_LEVEL or is_pathway_neutral(pathway):
            return True
        return pathway in self.eligible_pathways

    def covers_curriculum(self, curriculum_type: str | None) -> bool:
        if not self.curriculum_types or not curriculum_type:
            return True
        return curriculum_type in self.curriculum_types


def _build_grant(combination: TeacherCombination, subject_ids_by_name: dict[str, set[str]]) -> CombinationGrant:
    primary_names = frozenset(normalize_subject_name(item) for item in combination.primary_subjects or [] if item)
    # A subject granted as primary is never also treated as derived.
    derived_names = frozenset(
        normalize_subject_name(item) for item in combination.derived_subjects or [] if item
    ) - primary_names

    def _ids(names: frozenset[str]) -> frozenset[str]:
        resolved: set[str] = set()
        for name in names:
            resolved.update(subject_ids_by_name.get(name, ()))
        return frozenset(resolved)

    return CombinationGrant(
        id=combination.id,
        code=combination.code,
        name=combination.name,
        primary_names=primary_names,
        derived_names=derived_names,
        primary_subject_ids=_ids(primary_names),
        derived_subject_ids=_ids(derived_names),
        eligible_levels=frozenset(combination.eligible_levels or []),
        eligible_pathways=frozenset(combination.eligible_pathways or []),
        curriculum_types=frozenset(combination.curriculum_types or []),
        tsc_recognized=bool(combination.tsc_recognized),
    )


class CombinationRegistry:
    """Process-wide snapshot of active combinations, keyed by id.

    The snapshot is rebuilt once the TTL has passed, after ``invalidate()`` is
    called by an administrative edit, or the first time an unknown id is asked
    for. An id that is still unknown after that reload is remembered as a miss
    until the next rebuild.
    """

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self._lock = threading.Lock()
        self._grants: dict[str, CombinationGrant] = {}
        self._misses: set[str] = set()
        self._loaded_at: float | None = None
        self._ttl_seconds = ttl_seconds

    @property
    def ttl_seconds(self) -> int:
        if self._ttl_seconds is not None:
            return self._ttl_seconds
        return get_settings().combination_cache_ttl_seconds

    def invalidate(self) -> None:
        with self._lock:
            self._grants = {}
            self._misses = set()
            self._loaded_at = None

    def _is_stale(self) -> bool:
        if self._loaded_at is None:
            return True
        return time.monotonic() - self._loaded_at > self.ttl_seconds

    def describe(self) -> dict:
        with self._lock:
            loaded_at = self._loaded_at
            count = len(self._grants)
        return {
            "loaded": loaded_at is not None,
            "combinations": count,
            "age_seconds": round(time.monotonic() - loaded_at, 1) if loaded_at is not None else None,
            "ttl_seconds": self.ttl_seconds,
        }

    def load(self, db: Session) -> None:
        combinations = list(
            db.execute(select(TeacherCombination).where(TeacherCombination.is_active.is_(True))).scalars()
        )
        subject_ids_by_name: dict[str, set[str]] = {}
        for subject_id, subject_name in db.execute(select(Subject.id, Subject.name)).all():
            subject_ids_by_name.setdefault(normalize_subject_name(subject_name), set()).add(subject_id)

        grants = {item.id: _build_grant(item, subject_ids_by_name) for item in combinations}
        with self._lock:
            self._grants = grants
            self._misses = set()
            self._loaded_at = time.monotonic()
        logger.info("Loaded %s active teacher combinations", len(grants))

    def resolve(self, db: Session, combination_id: str | None) -> CombinationGrant | None:
        if not combination_id:
            return None
        with self._lock:
            stale = self._is_stale()
            grant = self._grants.get(combination_id)
            known_miss = combination_id in self._misses
        if stale or (grant is None and not known_miss):
            self.load(db)
            with self._lock:
                grant = self._grants.get(combination_id)
                if grant is None:
                    self._misses.add(combination_id)
        return grant

    def grant_kind(self, db: Session, combination_id: str | None, subject: Subject) -> GrantKind:
        grant = self.resolve(db, combination_id)
        if grant is None:
            return GrantKind.none
        return grant.grant_kind(subject)


registry = CombinationRegistry()


def preview_combination(db: Session, combination: TeacherCombination, school_id: str) -> dict:
    """Match a combination's granted names against one school's subjects."""
    grant = _build_grant(combination, {})
    subjects = list(
        db.execute(select(Subject).where(Subject.school_id == school_id).order_by(Subject.name)).scalars()
    )
    matched: list[dict] = []
    seen_names: set[str] = set()
    for subject in subjects:
        kind = grant.grant_kind(subject)
        if kind is GrantKind.none:
            continue
        seen_names.add(normalize_subject_name(subject.name))
        matched.append(
            {
                "subject_id": subject.id,
                "name": subject.name,
                "level": subject.level,
                "pathway": subject.pathway,
                "grant_kind": kind.value,
            }
        )
    unmatched = sorted((grant.primary_names | grant.derived_names) - seen_names)
    return {
        "combination_id": combination.id,
        "code": combination.code,
        "subjects": matched,
        "unmatched_names": unmatched,
    }
