# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student outcome computation for period closure.

This module turns the grade inputs of each inscription into a final
average, a failed-subject count and a promotion decision. The computation
never touches the database; the preview and the executor both call
``calculate_outcomes`` on a loaded snapshot, so a preview always shows
exactly what a commit would persist.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from src.domains.period_closure.errors import ClosureComputationError
from src.domains.period_closure.grade_aggregator import (
    AggregationContext,
    SubjectGradeResult,
    SubjectInput,
    aggregate_subject,
    round_score,
)
from src.domains.period_closure.transition_rules import (
    MissingRule,
    TransitionRule,
    lookup_rule,
    resolve_transition,
)
from src.models.common import OutcomeStatus
from src.utils.datetime import format_iso


@dataclass(frozen=True)
class InscriptionInput:
    """An inscription of the closing period with its subjects."""

    inscription_id: int
    person_id: int
    grade_id: int
    section_id: int | None
    subjects: tuple[SubjectInput, ...] = ()


@dataclass(frozen=True)
class StudentOutcome:
    """Computed closure outcome of one inscription."""

    inscription_id: int
    person_id: int
    grade_id: int
    section_id: int | None
    final_average: Decimal | None
    failed_subjects: int
    status: OutcomeStatus
    promotion_grade_id: int | None
    graduated_at: datetime | None
    subject_results: tuple[SubjectGradeResult, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def pending_subjects(self) -> tuple[SubjectGradeResult, ...]:
        """Failed subjects, in subject order."""
        return tuple(result for result in self.subject_results if result.failed)

    @property
    def is_graduated(self) -> bool:
        return self.graduated_at is not None


def final_average(results: tuple[SubjectGradeResult, ...]) -> Decimal | None:
    """Unweighted mean of the final subject scores, or None without subjects."""
    if not results:
        return None
    total = sum((result.final_score for result in results), Decimal("0"))
    return round_score(total / len(results))


def calculate_outcome(
    inscription: InscriptionInput,
    rules: Mapping[int, TransitionRule],
    context: AggregationContext,
    as_of: datetime,
) -> StudentOutcome:
    """Compute the outcome of a single inscription.

    Args:
        inscription: Inscription and its grade inputs.
        rules: Transition rules keyed by origin grade.
        context: Period-wide aggregation parameters.
        as_of: Evaluation timestamp, used as graduation date.

    Returns:
        The computed outcome.

    Raises:
        ClosureComputationError: If grade inputs are malformed or the
            inscription's grade has no transition rule.
    """
    lookup = lookup_rule(rules, inscription.grade_id)
    if isinstance(lookup, MissingRule):
        raise ClosureComputationError(
            f"No transition rule configured for grade {lookup.grade_id} "
            f"(inscription {inscription.inscription_id})"
        )
    rule = lookup.rule

    results = tuple(aggregate_subject(subject, context) for subject in inscription.subjects)
    failed = sum(1 for result in results if result.failed)
    average = final_average(results)

    decision = resolve_transition(rule, average, failed, as_of)

    return StudentOutcome(
        inscription_id=inscription.inscription_id,
        person_id=inscription.person_id,
        grade_id=inscription.grade_id,
        section_id=inscription.section_id,
        final_average=average,
        failed_subjects=failed,
        status=decision.status,
        promotion_grade_id=decision.promotion_grade_id,
        graduated_at=decision.graduated_at,
        subject_results=results,
        metadata={
            "rule_id": rule.id,
            "min_average": str(rule.min_average),
            "max_pending_subjects": rule.max_pending_subjects,
            "auto_graduate": rule.auto_graduate,
            "passing_threshold": str(context.passing_threshold),
            "council_points_mode": context.council_points_mode,
            "evaluated_at": format_iso(as_of),
        },
    )


def calculate_outcomes(
    inscriptions: tuple[InscriptionInput, ...],
    rules: Mapping[int, TransitionRule],
    context: AggregationContext,
    as_of: datetime,
) -> list[StudentOutcome]:
    """Compute outcomes for every inscription, in input order."""
    return [calculate_outcome(inscription, rules, context, as_of) for inscription in inscriptions]
