# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Promotion decisions based on per-grade transition rules.

Each grade has at most one rule. A lookup returns a tagged result so the
validator can enumerate every grade that lacks one instead of stopping at
the first:

    match lookup_rule(rules, grade_id):
        case Found(rule):
            decision = resolve_transition(rule, average, failed, as_of)
        case MissingRule(grade_id):
            errors.append(...)
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.models.common import OutcomeStatus


@dataclass(frozen=True)
class TransitionRule:
    """Promotion thresholds for students leaving ``grade_from_id``."""

    id: int
    grade_from_id: int
    grade_to_id: int | None
    min_average: Decimal
    max_pending_subjects: int
    auto_graduate: bool = False


@dataclass(frozen=True)
class Found:
    rule: TransitionRule


@dataclass(frozen=True)
class MissingRule:
    grade_id: int


RuleLookup = Found | MissingRule


@dataclass(frozen=True)
class TransitionDecision:
    """Status and destination of a student for the next period."""

    status: OutcomeStatus
    promotion_grade_id: int | None
    graduated_at: datetime | None = None


def lookup_rule(rules: Mapping[int, TransitionRule], grade_id: int) -> RuleLookup:
    """Find the transition rule of a grade.

    Args:
        rules: Rules keyed by ``grade_from_id``.
        grade_id: Grade the student is leaving.

    Returns:
        ``Found`` with the rule, or ``MissingRule`` with the grade id.
    """
    rule = rules.get(grade_id)
    if rule is None:
        return MissingRule(grade_id)
    return Found(rule)


def resolve_transition(
    rule: TransitionRule,
    final_average: Decimal | None,
    failed_subjects: int,
    as_of: datetime,
) -> TransitionDecision:
    """Decide promotion, promotion with pending subjects, or retention.

    Both thresholds are inclusive: an average equal to ``min_average``
    passes, and exactly ``max_pending_subjects`` failures still promote.
    A missing average (no subjects) counts as zero.

    Args:
        rule: Transition rule of the student's grade.
        final_average: Mean of the student's final subject scores.
        failed_subjects: Number of failed subjects.
        as_of: Timestamp recorded as graduation date.

    Returns:
        The transition decision.
    """
    average = final_average if final_average is not None else Decimal("0")
    passes = failed_subjects == 0 and average >= rule.min_average

    if passes and (rule.auto_graduate or rule.grade_to_id is None):
        return TransitionDecision(
            status=OutcomeStatus.APROBADO,
            promotion_grade_id=None,
            graduated_at=as_of,
        )

    if passes:
        return TransitionDecision(
            status=OutcomeStatus.APROBADO,
            promotion_grade_id=rule.grade_to_id,
        )

    if 0 < failed_subjects <= rule.max_pending_subjects:
        return TransitionDecision(
            status=OutcomeStatus.MATERIAS_PENDIENTES,
            promotion_grade_id=rule.grade_to_id,
        )

    return TransitionDecision(
        status=OutcomeStatus.REPROBADO,
        promotion_grade_id=rule.grade_from_id,
    )
