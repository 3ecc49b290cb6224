from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.models.assignment import SubjectAssignment
from app.models.selection_rule import RuleType, SubjectSelectionRule
from app.models.subject import Subject

PERIOD_BOUNDS_RULE = "subject_period_bounds"

# Adding more subjects can never cure these, so they block an assignment up front.
INCREMENTAL_BLOCKING_RULES = {RuleType.max_count.value, RuleType.incompatible_pair.value, PERIOD_BOUNDS_RULE}


@dataclass(frozen=True)
class RuleViolation:
    rule_id: str | None
    rule_type: str
    message: str
    missing_subject_ids: tuple[str, ...] = field(default_factory=tuple)
    shortfall: int | None = None
    excess: int | None = None
    pair: tuple[str, str] | None = None

    @property
    def blocks_incremental(self) -> bool:
        return self.rule_type in INCREMENTAL_BLOCKING_RULES

    def to_dict(self) -> dict:
        payload = {"rule_id": self.rule_id, "rule_type": self.rule_type, "message": self.message}
        if self.missing_subject_ids:
            payload["missing_subject_ids"] = list(self.missing_subject_ids)
        if self.shortfall is not None:
            payload["shortfall"] = self.shortfall
        if self.excess is not None:
            payload["excess"] = self.excess
        if self.pair is not None:
            payload["pair"] = list(self.pair)
        return payload


def applicable_rules(
    db: Session, curriculum_type: str, level: str, pathway: str | None
) -> list[SubjectSelectionRule]:
    stmt = select(SubjectSelectionRule).where(
        SubjectSelectionRule.is_active.is_(True),
        SubjectSelectionRule.curriculum_type == curriculum_type,
        SubjectSelectionRule.level == level,
    )
    if pathway:
        stmt = stmt.where(or_(SubjectSelectionRule.pathway.is_(None), SubjectSelectionRule.pathway == pathway))
    else:
        stmt = stmt.where(SubjectSelectionRule.pathway.is_(None))
    return list(db.execute(stmt.order_by(SubjectSelectionRule.created_at)).scalars())


def _describe(rule: SubjectSelectionRule, fallback: str) -> str:
    return (rule.description or "").strip() or fallback


def _rule_pairs(rule: SubjectSelectionRule) -> list[tuple[str, str]]:
    pairs = [(item.first_subject_id, item.second_subject_id) for item in rule.pairs]
    if not pairs and len(rule.subject_ids or []) == 2:
        first, second = rule.subject_ids
        pairs.append((first, second))
    return pairs


def _evaluate_rule(rule: SubjectSelectionRule, assigned: set[str]) -> list[RuleViolation]:
    governed = list(dict.fromkeys(rule.subject_ids or []))
    selected = [item for item in governed if item in assigned]

    if rule.rule_type == RuleType.required_subject:
        return [
            RuleViolation(
                rule_id=rule.id,
                rule_type=rule.rule_type.value,
                message=_describe(rule, "Required subject is missing"),
                missing_subject_ids=(subject_id,),
            )
            for subject_id in governed
            if subject_id not in assigned
        ]

    if rule.rule_type == RuleType.min_count:
        minimum = rule.min_count or 0
        if len(selected) < minimum:
            return [
                RuleViolation(
                    rule_id=rule.id,
                    rule_type=rule.rule_type.value,
                    message=f"{_describe(rule, 'Too few subjects selected')} (Minimum: {minimum}, Selected: {len(selected)})",
                    shortfall=minimum - len(selected),
                )
            ]
        return []

    if rule.rule_type == RuleType.max_count:
        maximum = rule.max_count if rule.max_count is not None else len(governed)
        if len(selected) > maximum:
            return [
                RuleViolation(
                    rule_id=rule.id,
                    rule_type=rule.rule_type.value,
                    message=f"{_describe(rule, 'Too many subjects selected')} (Maximum: {maximum}, Selected: {len(selected)})",
                    excess=len(selected) - maximum,
                )
            ]
        return []

    if rule.rule_type == RuleType.incompatible_pair:
        return [
            RuleViolation(
                rule_id=rule.id,
                rule_type=rule.rule_type.value,
                message=_describe(rule, "Incompatible subjects assigned together"),
                pair=(first, second),
            )
            for first, second in _rule_pairs(rule)
            if first in assigned and second in assigned
        ]
    return []


def evaluate(
    db: Session,
    curriculum_type: str,
    level: str,
    pathway: str | None,
    assigned_subject_ids: set[str] | list[str],
) -> list[RuleViolation]:
    """Return every violation of the active rules for this curriculum, level and pathway."""
    assigned = set(assigned_subject_ids)
    violations: list[RuleViolation] = []
    for rule in applicable_rules(db, curriculum_type, level, pathway):
        violations.extend(_evaluate_rule(rule, assigned))
    return violations


def check_period_bounds(subject: Subject, weekly_periods: int) -> RuleViolation | None:
    if subject.min_weekly_periods <= weekly_periods <= subject.max_weekly_periods:
        return None
    return RuleViolation(
        rule_id=None,
        rule_type=PERIOD_BOUNDS_RULE,
        message=(
            f"{subject.name} must have between {subject.min_weekly_periods} and "
            f"{subject.max_weekly_periods} weekly periods (requested: {weekly_periods})"
        ),
        shortfall=max(0, subject.min_weekly_periods - weekly_periods) or None,
        excess=max(0, weekly_periods - subject.max_weekly_periods) or None,
    )


def assigned_subject_ids(
    db: Session,
    *,
    academic_year_id: str,
    term_id: str,
    classroom_id: str | None = None,
    stream_id: str | None = None,
) -> set[str]:
    stmt = select(SubjectAssignment.subject_id).where(
        SubjectAssignment.academic_year_id == academic_year_id,
        SubjectAssignment.term_id == term_id,
        SubjectAssignment.is_active.is_(True),
    )
    if stream_id:
        stmt = stmt.where(SubjectAssignment.stream_id == stream_id)
    else:
        stmt = stmt.where(SubjectAssignment.classroom_id == classroom_id)
    return set(db.execute(stmt).scalars())
