# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Post-closure lifecycle of pending subjects.

A pending subject starts as ``pendiente`` when a closure promotes a student
with failed subjects, and is resolved exactly once, to ``aprobada`` or
``convalidada``. Resolving it never touches the outcome of the period it
came from.
"""

from __future__ import annotations

import logging

from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.period_closure.errors import (
    InvalidPendingSubjectTransitionError,
    PendingSubjectNotFoundError,
)
from src.domains.period_closure.snapshot import get_period
from src.infrastructure.database.models import Inscription, PendingSubject
from src.models.common import PendingSubjectStatus
from src.models.period_closure import PendingSubjectResponse
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

RESOLVED_STATUSES = (PendingSubjectStatus.APROBADA, PendingSubjectStatus.CONVALIDADA)


class PendingSubjectService:
    """Service for resolving and listing pending subjects.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize pending subject service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def resolve(
        self,
        pending_subject_id: int,
        status: PendingSubjectStatus,
    ) -> PendingSubjectResponse:
        """Resolve a pending subject.

        Args:
            pending_subject_id: Pending subject identifier.
            status: ``aprobada`` or ``convalidada``.

        Returns:
            The resolved pending subject.

        Raises:
            PendingSubjectNotFoundError: If the pending subject does not exist.
            InvalidPendingSubjectTransitionError: If the subject is already
                resolved or ``status`` is not a resolution.
        """
        if status not in RESOLVED_STATUSES:
            raise InvalidPendingSubjectTransitionError(
                "Pending subjects can only be resolved as aprobada or convalidada, "
                f"not {status}"
            )
        status = PendingSubjectStatus(status)

        pending = await self.db.get(PendingSubject, pending_subject_id)
        if pending is None:
            raise PendingSubjectNotFoundError(f"Pending subject {pending_subject_id} not found")

        if pending.status != PendingSubjectStatus.PENDIENTE.value:
            raise InvalidPendingSubjectTransitionError(
                f"Pending subject {pending_subject_id} is already {pending.status}"
            )

        pending.status = status.value
        pending.resolved_at = utc_now()
        await self.db.commit()
        await self.db.refresh(pending)

        logger.info("Resolved pending subject %s as %s", pending_subject_id, status.value)

        return PendingSubjectResponse.model_validate(pending)

    async def list_for_period(self, period_id: int) -> list[PendingSubjectResponse]:
        """List pending subjects carried into inscriptions of a period.

        Unresolved subjects come first, most recently updated first within
        each status.

        Args:
            period_id: Period the new inscriptions belong to.

        Raises:
            PeriodNotFoundError: If the period does not exist.
        """
        await get_period(self.db, period_id)

        status_order = case(
            (PendingSubject.status == PendingSubjectStatus.PENDIENTE.value, 0),
            else_=1,
        )
        result = await self.db.execute(
            select(PendingSubject)
            .join(Inscription, Inscription.id == PendingSubject.new_inscription_id)
            .where(Inscription.school_period_id == period_id)
            .order_by(
                status_order,
                PendingSubject.status,
                PendingSubject.updated_at.desc(),
                PendingSubject.id,
            )
        )
        return [PendingSubjectResponse.model_validate(row) for row in result.scalars().all()]
