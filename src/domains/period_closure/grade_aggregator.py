# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Final grade aggregation for one inscription subject.

The aggregator folds weighted qualifications and council points into a
single final score. It is a pure function over immutable inputs so the
preview and the committed closure always agree.

    raw_score   = sum(score * percentage / 100) over the period's terms
    final_score = raw_score + council_points

Every figure is rounded half-up to two places, matching the DECIMAL(5,2)
columns it is persisted into.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from src.core.config.settings import CouncilPointsMode
from src.domains.period_closure.errors import ClosureComputationError
from src.models.common import SubjectStatus

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def round_score(value: Decimal) -> Decimal:
    """Round a score half-up to two decimal places."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class QualificationInput:
    """A student's score on one evaluation plan item.

    ``percentage`` and ``term_id`` are None when the evaluation plan the
    qualification points to no longer exists.
    """

    qualification_id: int
    score: Decimal
    percentage: Decimal | None
    term_id: int | None


@dataclass(frozen=True)
class CouncilPointInput:
    """Council points granted to a subject in one term."""

    term_id: int
    points: Decimal


@dataclass(frozen=True)
class SubjectInput:
    """Grade inputs of one inscription subject."""

    inscription_subject_id: int
    subject_id: int
    subject_name: str | None = None
    qualifications: tuple[QualificationInput, ...] = ()
    council_points: tuple[CouncilPointInput, ...] = ()


@dataclass(frozen=True)
class AggregationContext:
    """Period-wide parameters of the aggregation.

    Attributes:
        term_ids: Terms of the closing period; only their items count.
        closing_term_id: Last term of the period.
        passing_threshold: Minimum final score to pass a subject.
        council_points_mode: Which council point rows are carried.
    """

    term_ids: frozenset[int]
    closing_term_id: int | None
    passing_threshold: Decimal
    council_points_mode: CouncilPointsMode = "closing_term"


@dataclass(frozen=True)
class SubjectGradeResult:
    """Final grade of one inscription subject."""

    inscription_subject_id: int
    subject_id: int
    subject_name: str | None
    raw_score: Decimal
    council_points: Decimal
    final_score: Decimal
    status: SubjectStatus
    has_qualifications: bool

    @property
    def failed(self) -> bool:
        return self.status is SubjectStatus.REPROBADA


def _council_points(subject: SubjectInput, context: AggregationContext) -> Decimal:
    if context.council_points_mode == "all_terms":
        rows = [p for p in subject.council_points if p.term_id in context.term_ids]
    else:
        rows = [p for p in subject.council_points if p.term_id == context.closing_term_id]
    return sum((p.points for p in rows), ZERO)


def aggregate_subject(subject: SubjectInput, context: AggregationContext) -> SubjectGradeResult:
    """Compute the final grade of one inscription subject.

    Args:
        subject: Qualifications and council points of the subject.
        context: Period-wide aggregation parameters.

    Returns:
        The subject's final grade.

    Raises:
        ClosureComputationError: If a qualification references a missing
            evaluation plan.
    """
    raw = ZERO
    counted = 0
    for qualification in subject.qualifications:
        if qualification.percentage is None:
            raise ClosureComputationError(
                f"Qualification {qualification.qualification_id} of inscription subject "
                f"{subject.inscription_subject_id} references a missing evaluation plan"
            )
        if qualification.term_id not in context.term_ids:
            continue
        raw += qualification.score * qualification.percentage / HUNDRED
        counted += 1

    raw_score = round_score(raw)
    council_points = round_score(_council_points(subject, context))
    final_score = round_score(raw_score + council_points)

    status = (
        SubjectStatus.APROBADA
        if final_score >= context.passing_threshold
        else SubjectStatus.REPROBADA
    )

    return SubjectGradeResult(
        inscription_subject_id=subject.inscription_subject_id,
        subject_id=subject.subject_id,
        subject_name=subject.subject_name,
        raw_score=raw_score,
        council_points=council_points,
        final_score=final_score,
        status=status,
        has_qualifications=counted > 0,
    )
