# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read-only snapshot of everything a period closure depends on.

The validator, the preview and the executor all work from a
``PeriodSnapshot`` rather than from live ORM objects. Loading happens in a
handful of queries; everything after that is pure computation over frozen
dataclasses.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.config.settings import ClosureSettings, CouncilPointsMode
from src.domains.period_closure.errors import PeriodNotFoundError
from src.domains.period_closure.grade_aggregator import (
    AggregationContext,
    CouncilPointInput,
    QualificationInput,
    SubjectInput,
)
from src.domains.period_closure.outcome_calculator import InscriptionInput
from src.domains.period_closure.transition_rules import TransitionRule
from src.infrastructure.database.models import (
    CouncilChecklist,
    Grade,
    Inscription,
    InscriptionSubject,
    PeriodGrade,
    PeriodGradeSection,
    Qualification,
    SchoolPeriod,
    SchoolPeriodTransitionRule,
    Setting,
    Term,
)
from src.models.common import ChecklistStatus

logger = logging.getLogger(__name__)

MIN_APPROVAL_GRADE_KEY = "min_approval_grade"

# Scores are on a 0-20 scale.
MIN_SCORE = Decimal("0")
MAX_SCORE = Decimal("20")


@dataclass(frozen=True)
class PeriodInfo:
    """Identity and state of a school period."""

    id: int
    name: str
    start_year: int
    end_year: int
    is_active: bool

    @classmethod
    def from_model(cls, period: SchoolPeriod) -> PeriodInfo:
        return cls(
            id=period.id,
            name=period.name,
            start_year=period.start_year,
            end_year=period.end_year,
            is_active=period.is_active,
        )


@dataclass(frozen=True)
class TermInfo:
    id: int
    name: str
    order: int
    is_blocked: bool


@dataclass(frozen=True)
class PeriodSnapshot:
    """Inputs of a period closure, loaded at one point in time.

    Attributes:
        period: The period being closed.
        terms: Terms of the period ordered by ``order``.
        structure_grade_ids: Grades offered in the period.
        rules: Transition rules keyed by origin grade.
        inscriptions: Inscriptions of the period with their grade inputs.
        passing_threshold: Minimum final score to pass a subject.
        council_points_mode: Which council point rows are carried.
        checklist_total: Council checklist entries of the period.
        checklist_done: Entries with status ``done``.
        next_period: Period that receives the new inscriptions.
        next_structure: Sections offered per grade in the next period.
        next_period_person_ids: Students already enrolled in the next period.
        grade_names: Grade names keyed by id.
    """

    period: PeriodInfo
    terms: tuple[TermInfo, ...]
    structure_grade_ids: frozenset[int]
    rules: Mapping[int, TransitionRule]
    inscriptions: tuple[InscriptionInput, ...]
    passing_threshold: Decimal
    council_points_mode: CouncilPointsMode = "closing_term"
    checklist_total: int = 0
    checklist_done: int = 0
    next_period: PeriodInfo | None = None
    next_structure: Mapping[int, frozenset[int]] = field(default_factory=dict)
    next_period_person_ids: frozenset[int] = frozenset()
    grade_names: Mapping[int, str] = field(default_factory=dict)

    @property
    def closing_term_id(self) -> int | None:
        if not self.terms:
            return None
        return max(self.terms, key=lambda term: term.order).id

    @property
    def unblocked_terms(self) -> tuple[TermInfo, ...]:
        return tuple(term for term in self.terms if not term.is_blocked)

    @property
    def aggregation_context(self) -> AggregationContext:
        return AggregationContext(
            term_ids=frozenset(term.id for term in self.terms),
            closing_term_id=self.closing_term_id,
            passing_threshold=self.passing_threshold,
            council_points_mode=self.council_points_mode,
        )


# =============================================================================
# Period lookups
# =============================================================================


async def get_period(
    db: AsyncSession,
    period_id: int,
    for_update: bool = False,
) -> SchoolPeriod:
    """Fetch a school period, optionally locking its row.

    Raises:
        PeriodNotFoundError: If the period does not exist.
    """
    query = select(SchoolPeriod).where(SchoolPeriod.id == period_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    period = result.scalar_one_or_none()
    if period is None:
        raise PeriodNotFoundError(f"School period {period_id} not found")
    return period


async def find_next_period(db: AsyncSession, period: SchoolPeriod) -> SchoolPeriod | None:
    """Return the period that follows ``period`` chronologically."""
    query = (
        select(SchoolPeriod)
        .where(SchoolPeriod.start_year > period.start_year)
        .order_by(SchoolPeriod.start_year, SchoolPeriod.end_year, SchoolPeriod.id)
        .limit(1)
    )
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def load_passing_threshold(db: AsyncSession, settings: ClosureSettings) -> Decimal:
    """Resolve the subject passing threshold.

    The ``min_approval_grade`` platform setting takes precedence over the
    configured default unless it is not a finite score between 0 and 20.
    """
    result = await db.execute(select(Setting.value).where(Setting.key == MIN_APPROVAL_GRADE_KEY))
    raw = result.scalar_one_or_none()
    if raw is None:
        return settings.passing_threshold
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        value = None
    if value is None or not value.is_finite() or not MIN_SCORE <= value <= MAX_SCORE:
        logger.warning(
            "Ignoring invalid %s setting %r, using %s",
            MIN_APPROVAL_GRADE_KEY,
            raw,
            settings.passing_threshold,
        )
        return settings.passing_threshold
    return value


async def load_transition_rules(db: AsyncSession) -> dict[int, TransitionRule]:
    """Load every transition rule keyed by origin grade."""
    result = await db.execute(select(SchoolPeriodTransitionRule))
    return {
        row.grade_from_id: TransitionRule(
            id=row.id,
            grade_from_id=row.grade_from_id,
            grade_to_id=row.grade_to_id,
            min_average=Decimal(row.min_average),
            max_pending_subjects=row.max_pending_subjects,
            auto_graduate=row.auto_graduate,
        )
        for row in result.scalars().all()
    }


# =============================================================================
# Snapshot
# =============================================================================


def _to_subject_input(inscription_subject: InscriptionSubject) -> SubjectInput:
    qualifications = []
    for qualification in inscription_subject.qualifications:
        plan = qualification.evaluation_plan
        qualifications.append(
            QualificationInput(
                qualification_id=qualification.id,
                score=Decimal(qualification.score),
                percentage=Decimal(plan.percentage) if plan is not None else None,
                term_id=plan.term_id if plan is not None else None,
            )
        )

    return SubjectInput(
        inscription_subject_id=inscription_subject.id,
        subject_id=inscription_subject.subject_id,
        subject_name=inscription_subject.subject.name if inscription_subject.subject else None,
        qualifications=tuple(qualifications),
        council_points=tuple(
            CouncilPointInput(term_id=point.term_id, points=Decimal(point.points))
            for point in inscription_subject.council_points
        ),
    )


async def _load_inscriptions(db: AsyncSession, period_id: int) -> tuple[InscriptionInput, ...]:
    subjects = selectinload(Inscription.subjects)
    query = (
        select(Inscription)
        .where(Inscription.school_period_id == period_id)
        .options(
            subjects.selectinload(InscriptionSubject.qualifications).selectinload(
                Qualification.evaluation_plan
            ),
            subjects.selectinload(InscriptionSubject.council_points),
            subjects.selectinload(InscriptionSubject.subject),
        )
        .order_by(Inscription.id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(query)

    return tuple(
        InscriptionInput(
            inscription_id=inscription.id,
            person_id=inscription.person_id,
            grade_id=inscription.grade_id,
            section_id=inscription.section_id,
            subjects=tuple(_to_subject_input(subject) for subject in inscription.subjects),
        )
        for inscription in result.scalars().all()
    )


async def _load_structure(db: AsyncSession, period_id: int) -> dict[int, frozenset[int]]:
    query = (
        select(PeriodGrade.grade_id, PeriodGradeSection.section_id)
        .outerjoin(PeriodGradeSection, PeriodGradeSection.period_grade_id == PeriodGrade.id)
        .where(PeriodGrade.school_period_id == period_id)
    )
    result = await db.execute(query)

    sections: dict[int, set[int]] = {}
    for grade_id, section_id in result.all():
        grade_sections = sections.setdefault(grade_id, set())
        if section_id is not None:
            grade_sections.add(section_id)
    return {grade_id: frozenset(ids) for grade_id, ids in sections.items()}


async def load_checklist_counts(db: AsyncSession, period_id: int) -> tuple[int, int]:
    query = select(
        func.count(CouncilChecklist.id),
        func.count(CouncilChecklist.id).filter(CouncilChecklist.status == ChecklistStatus.DONE.value),
    ).where(CouncilChecklist.school_period_id == period_id)
    result = await db.execute(query)
    total, done = result.one()
    return total or 0, done or 0


async def load_period_snapshot(
    db: AsyncSession,
    period_id: int,
    settings: ClosureSettings,
) -> PeriodSnapshot:
    """Load the closure inputs of a period.

    Args:
        db: Async database session.
        period_id: Period to close.
        settings: Closure settings.

    Returns:
        The loaded snapshot.

    Raises:
        PeriodNotFoundError: If the period does not exist.
    """
    period = await get_period(db, period_id)

    terms_result = await db.execute(
        select(Term).where(Term.school_period_id == period_id).order_by(Term.order, Term.id)
    )
    terms = tuple(
        TermInfo(id=term.id, name=term.name, order=term.order, is_blocked=term.is_blocked)
        for term in terms_result.scalars().all()
    )

    structure = await _load_structure(db, period_id)
    checklist_total, checklist_done = await load_checklist_counts(db, period_id)

    next_period = await find_next_period(db, period)
    next_structure: dict[int, frozenset[int]] = {}
    next_person_ids: frozenset[int] = frozenset()
    if next_period is not None:
        next_structure = await _load_structure(db, next_period.id)
        persons_result = await db.execute(
            select(Inscription.person_id).where(Inscription.school_period_id == next_period.id)
        )
        next_person_ids = frozenset(persons_result.scalars().all())

    grades_result = await db.execute(select(Grade.id, Grade.name))

    snapshot = PeriodSnapshot(
        period=PeriodInfo.from_model(period),
        terms=terms,
        structure_grade_ids=frozenset(structure),
        rules=await load_transition_rules(db),
        inscriptions=await _load_inscriptions(db, period_id),
        passing_threshold=await load_passing_threshold(db, settings),
        council_points_mode=settings.council_points_mode,
        checklist_total=checklist_total,
        checklist_done=checklist_done,
        next_period=PeriodInfo.from_model(next_period) if next_period is not None else None,
        next_structure=next_structure,
        next_period_person_ids=next_person_ids,
        grade_names={grade_id: name for grade_id, name in grades_result.all()},
    )

    logger.debug(
        "Loaded snapshot of period %s: %d inscriptions, %d terms",
        period_id,
        len(snapshot.inscriptions),
        len(snapshot.terms),
    )

    return snapshot
