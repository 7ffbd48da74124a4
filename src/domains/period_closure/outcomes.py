# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Queries over persisted closure outcomes."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.period_closure.snapshot import get_period
from src.infrastructure.database.models import Inscription, StudentPeriodOutcome
from src.models.common import OutcomeStatus
from src.models.period_closure import PeriodOutcomeResponse


class PeriodOutcomeService:
    """Read access to the outcomes written by a closure.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_outcomes(
        self,
        period_id: int,
        status: OutcomeStatus | None = None,
    ) -> list[PeriodOutcomeResponse]:
        """List student outcomes of a closed period.

        Args:
            period_id: School period identifier.
            status: Only return outcomes with this status.

        Returns:
            Outcomes ordered by failed subjects, most first.

        Raises:
            PeriodNotFoundError: If the period does not exist.
        """
        await get_period(self.db, period_id)

        query = (
            select(StudentPeriodOutcome, Inscription)
            .join(Inscription, Inscription.id == StudentPeriodOutcome.inscription_id)
            .where(Inscription.school_period_id == period_id)
        )
        if status is not None:
            query = query.where(StudentPeriodOutcome.status == OutcomeStatus(status).value)
        query = query.order_by(
            StudentPeriodOutcome.failed_subjects.desc(),
            StudentPeriodOutcome.inscription_id,
        )

        result = await self.db.execute(query)

        return [
            PeriodOutcomeResponse(
                id=outcome.id,
                inscription_id=outcome.inscription_id,
                person_id=inscription.person_id,
                grade_id=inscription.grade_id,
                section_id=inscription.section_id,
                final_average=outcome.final_average,
                failed_subjects=outcome.failed_subjects,
                status=outcome.status,
                promotion_grade_id=outcome.promotion_grade_id,
                graduated_at=outcome.graduated_at,
                metadata=outcome.audit_metadata,
            )
            for outcome, inscription in result.all()
        ]
