# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course council checklist and closure readiness.

This module provides the ChecklistService class for:
- Idempotent sign-off of council checklist entries
- Reporting how ready a period is for closure
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.period_closure.snapshot import (
    find_next_period,
    get_period,
    load_checklist_counts,
)
from src.infrastructure.database.models import CouncilChecklist, PeriodClosure, Term
from src.models.common import ChecklistStatus
from src.models.period_closure import (
    ChecklistEntryResponse,
    ChecklistScope,
    ChecklistSummary,
    ClosureStatusResponse,
    PeriodClosureSummary,
    PeriodSummary,
)
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class ChecklistService:
    """Service for council checklist entries and closure readiness.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize checklist service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def upsert_entry(
        self,
        scope: ChecklistScope,
        status: ChecklistStatus,
        completed_by: int | None = None,
    ) -> ChecklistEntryResponse:
        """Create or update the checklist entry of a scope.

        Marking an entry ``done`` stamps who completed it and when; any
        other status clears both fields. Calling this twice with the same
        arguments leaves a single row.

        Args:
            scope: Period, grade, section and term of the entry.
            status: New status.
            completed_by: User signing off, recorded for ``done``.

        Returns:
            The stored entry.

        Raises:
            PeriodNotFoundError: If the period does not exist.
        """
        status = ChecklistStatus(status)
        await get_period(self.db, scope.school_period_id)

        entry = await self._find(scope)
        if entry is None:
            entry = CouncilChecklist(
                school_period_id=scope.school_period_id,
                grade_id=scope.grade_id,
                section_id=scope.section_id,
                term_id=scope.term_id,
            )
            self.db.add(entry)
        self._apply_status(entry, status, completed_by)

        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent upsert created the row first.
            await self.db.rollback()
            entry = await self._find(scope)
            if entry is None:
                raise
            self._apply_status(entry, status, completed_by)
            await self.db.commit()

        await self.db.refresh(entry)

        logger.info(
            "Checklist entry %s set to %s (period=%s grade=%s section=%s term=%s)",
            entry.id,
            entry.status,
            scope.school_period_id,
            scope.grade_id,
            scope.section_id,
            scope.term_id,
        )

        return ChecklistEntryResponse.model_validate(entry)

    async def get_status(self, period_id: int) -> ClosureStatusResponse:
        """Summarize the closure readiness of a period.

        Args:
            period_id: School period identifier.

        Returns:
            Period, latest closure attempt, checklist and term counts.

        Raises:
            PeriodNotFoundError: If the period does not exist.
        """
        period = await get_period(self.db, period_id)

        closure_result = await self.db.execute(
            select(PeriodClosure)
            .where(PeriodClosure.school_period_id == period_id)
            .order_by(PeriodClosure.created_at.desc(), PeriodClosure.id.desc())
            .limit(1)
        )
        closure = closure_result.scalar_one_or_none()

        total, done = await load_checklist_counts(self.db, period_id)

        terms_result = await self.db.execute(
            select(
                func.count(Term.id),
                func.count(Term.id).filter(Term.is_blocked.is_(True)),
            ).where(Term.school_period_id == period_id)
        )
        total_terms, blocked_terms = terms_result.one()

        next_period = await find_next_period(self.db, period)

        return ClosureStatusResponse(
            period=PeriodSummary.model_validate(period),
            closure=PeriodClosureSummary.model_validate(closure) if closure else None,
            checklist=ChecklistSummary(total=total, done=done),
            blocked_terms=blocked_terms or 0,
            total_terms=total_terms or 0,
            next_period=PeriodSummary.model_validate(next_period) if next_period else None,
        )

    async def _find(self, scope: ChecklistScope) -> CouncilChecklist | None:
        result = await self.db.execute(
            select(CouncilChecklist).where(
                CouncilChecklist.school_period_id == scope.school_period_id,
                CouncilChecklist.grade_id == scope.grade_id,
                CouncilChecklist.section_id == scope.section_id,
                CouncilChecklist.term_id == scope.term_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _apply_status(
        entry: CouncilChecklist,
        status: ChecklistStatus,
        completed_by: int | None,
    ) -> None:
        entry.status = status.value
        if status is ChecklistStatus.DONE:
            entry.completed_by = completed_by
            entry.completed_at = utc_now()
        else:
            entry.completed_by = None
            entry.completed_at = None
