# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Dry-run computation of closure outcomes.

The preview runs the same outcome calculator as the executor on a freshly
loaded snapshot and writes nothing.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import ClosureSettings
from src.domains.period_closure.grade_aggregator import SubjectGradeResult
from src.domains.period_closure.outcome_calculator import StudentOutcome, calculate_outcomes
from src.domains.period_closure.snapshot import PeriodSnapshot, load_period_snapshot
from src.models.period_closure import GradeSummary, PreviewOutcome, SubjectResultResponse
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


def _grade(snapshot: PeriodSnapshot, grade_id: int | None) -> GradeSummary | None:
    if grade_id is None:
        return None
    return GradeSummary(id=grade_id, name=snapshot.grade_names.get(grade_id, str(grade_id)))


def _subject_response(result: SubjectGradeResult) -> SubjectResultResponse:
    return SubjectResultResponse(
        inscription_subject_id=result.inscription_subject_id,
        subject_id=result.subject_id,
        subject_name=result.subject_name,
        raw_score=result.raw_score,
        council_points=result.council_points,
        final_score=result.final_score,
        status=result.status,
        has_qualifications=result.has_qualifications,
    )


def to_preview_outcome(snapshot: PeriodSnapshot, outcome: StudentOutcome) -> PreviewOutcome:
    """Convert a computed outcome into its preview representation."""
    return PreviewOutcome(
        inscription_id=outcome.inscription_id,
        person_id=outcome.person_id,
        grade=_grade(snapshot, outcome.grade_id),
        section_id=outcome.section_id,
        final_average=outcome.final_average,
        failed_subjects=outcome.failed_subjects,
        status=outcome.status,
        promotion_grade=_grade(snapshot, outcome.promotion_grade_id),
        graduated=outcome.is_graduated,
        subjects=[_subject_response(result) for result in outcome.subject_results],
    )


def build_preview(snapshot: PeriodSnapshot, as_of: datetime) -> list[PreviewOutcome]:
    """Compute preview outcomes for a snapshot.

    Students with the most failed subjects come first; ties keep
    inscription order.

    Raises:
        ClosureComputationError: If grade inputs are malformed or a grade
            has no transition rule.
    """
    outcomes = calculate_outcomes(
        snapshot.inscriptions,
        snapshot.rules,
        snapshot.aggregation_context,
        as_of,
    )
    outcomes.sort(key=lambda outcome: (-outcome.failed_subjects, outcome.inscription_id))
    return [to_preview_outcome(snapshot, outcome) for outcome in outcomes]


async def calculate_preview(
    db: AsyncSession,
    period_id: int,
    settings: ClosureSettings,
    as_of: datetime | None = None,
) -> list[PreviewOutcome]:
    """Load a period snapshot and compute its outcomes without persisting.

    Args:
        db: Async database session.
        period_id: Period to preview.
        settings: Closure settings.
        as_of: Evaluation timestamp; defaults to now.

    Returns:
        Preview outcomes, most failed subjects first.

    Raises:
        PeriodNotFoundError: If the period does not exist.
        ClosureComputationError: If outcomes cannot be computed.
    """
    snapshot = await load_period_snapshot(db, period_id, settings)
    preview = build_preview(snapshot, as_of or utc_now())

    logger.info("Computed closure preview of period %s for %d students", period_id, len(preview))

    return preview
