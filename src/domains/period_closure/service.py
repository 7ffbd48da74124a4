# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Period closure service.

This module provides the PeriodClosureService class, the single entry
point of the closure engine:
- Closure readiness and council checklist sign-off
- Validation, preview and execution of a closure
- Post-closure outcome and pending subject queries
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import ClosureSettings, get_settings
from src.domains.period_closure.checklist import ChecklistService
from src.domains.period_closure.executor import ClosureExecutor
from src.domains.period_closure.outcomes import PeriodOutcomeService
from src.domains.period_closure.pending_subjects import PendingSubjectService
from src.domains.period_closure.preview import calculate_preview
from src.domains.period_closure.validator import validate_closure
from src.models.common import ChecklistStatus, OutcomeStatus, PendingSubjectStatus
from src.models.period_closure import (
    ChecklistEntryResponse,
    ChecklistScope,
    ClosureExecutionResult,
    ClosureStatusResponse,
    ClosureValidationResult,
    PendingSubjectResponse,
    PeriodOutcomeResponse,
    PreviewOutcome,
)


class PeriodClosureService:
    """Facade over the period closure engine.

    Every operation runs on the session given at construction time.

    Attributes:
        db: Async database session.
        settings: Closure settings.
    """

    def __init__(self, db: AsyncSession, settings: ClosureSettings | None = None) -> None:
        """Initialize period closure service.

        Args:
            db: Async database session.
            settings: Closure settings; defaults to the application settings.
        """
        self.db = db
        self.settings = settings or get_settings().closure
        self._checklist = ChecklistService(db)
        self._pending = PendingSubjectService(db)
        self._outcomes = PeriodOutcomeService(db)

    async def get_closure_status(self, period_id: int) -> ClosureStatusResponse:
        """Report the closure readiness of a period."""
        return await self._checklist.get_status(period_id)

    async def upsert_checklist_entry(
        self,
        scope: ChecklistScope,
        status: ChecklistStatus,
        completed_by: int | None = None,
    ) -> ChecklistEntryResponse:
        """Create or update a council checklist entry."""
        return await self._checklist.upsert_entry(scope, status, completed_by)

    async def validate_closure(self, period_id: int) -> ClosureValidationResult:
        """Check every closure precondition of a period."""
        return await validate_closure(self.db, period_id, self.settings)

    async def calculate_preview(
        self,
        period_id: int,
        as_of: datetime | None = None,
    ) -> list[PreviewOutcome]:
        """Compute closure outcomes without persisting them."""
        return await calculate_preview(self.db, period_id, self.settings, as_of)

    async def execute_closure(
        self,
        period_id: int,
        initiated_by: int | None = None,
    ) -> ClosureExecutionResult:
        """Close a period and enroll its students in the next one."""
        executor = ClosureExecutor(self.db, self.settings)
        return await executor.execute(period_id, initiated_by)

    async def resolve_pending_subject(
        self,
        pending_subject_id: int,
        status: PendingSubjectStatus,
    ) -> PendingSubjectResponse:
        """Resolve a pending subject as approved or validated."""
        return await self._pending.resolve(pending_subject_id, status)

    async def list_outcomes(
        self,
        period_id: int,
        status: OutcomeStatus | None = None,
    ) -> list[PeriodOutcomeResponse]:
        """List persisted student outcomes of a period."""
        return await self._outcomes.list_outcomes(period_id, status)

    async def list_pending_subjects(self, period_id: int) -> list[PendingSubjectResponse]:
        """List pending subjects carried into a period's inscriptions."""
        return await self._pending.list_for_period(period_id)
