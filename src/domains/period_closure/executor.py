# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Closure executor.

Runs a period closure as a small state machine persisted in
``period_closures``:

    draft -> validating -> closed
                        -> failed

The draft row and each status change are committed on their own so the
audit trail survives a failed run. Final grades, outcomes, next-period
inscriptions and pending subjects are written in a single transaction:
either all of them exist afterwards or none do.
"""

import asyncio
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import ClosureSettings
from src.domains.period_closure.errors import (
    ClosureComputationError,
    ClosureConflictError,
    ClosurePersistenceError,
    ClosureValidationError,
    PeriodClosureError,
)
from src.domains.period_closure.outcome_calculator import StudentOutcome, calculate_outcomes
from src.domains.period_closure.snapshot import (
    PeriodSnapshot,
    get_period,
    load_period_snapshot,
)
from src.domains.period_closure.validator import validate_snapshot
from src.infrastructure.database.models import (
    Inscription,
    InscriptionSubject,
    PendingSubject,
    PeriodClosure,
    SchoolPeriod,
    StudentPeriodOutcome,
    SubjectFinalGrade,
)
from src.models.common import ClosureStatus, Escolaridad, OutcomeStatus, PendingSubjectStatus
from src.models.period_closure import ClosureExecutionResult, ClosureStats
from src.utils.datetime import format_iso, utc_now
from src.utils.logging import bind_context, get_logger, unbind_context

logger = get_logger(__name__)


def _log_entry(step: str, status: str, **details: Any) -> dict[str, Any]:
    return {"step": step, "status": status, "at": format_iso(utc_now()), **details}


class ClosureExecutor:
    """Executes the closure of a school period.

    Attributes:
        db: Async database session.
        settings: Closure settings.
    """

    def __init__(self, db: AsyncSession, settings: ClosureSettings) -> None:
        """Initialize closure executor.

        Args:
            db: Async database session.
            settings: Closure settings.
        """
        self.db = db
        self.settings = settings

    async def execute(
        self,
        period_id: int,
        initiated_by: int | None = None,
        as_of: datetime | None = None,
    ) -> ClosureExecutionResult:
        """Close a school period.

        Args:
            period_id: Period to close.
            initiated_by: User who started the closure.
            as_of: Evaluation timestamp; defaults to now.

        Returns:
            Execution result. ``success`` is False when validation failed or
            the closure transaction was rolled back.

        Raises:
            PeriodNotFoundError: If the period does not exist.
            ClosureConflictError: If the period is already closed.
        """
        as_of = as_of or utc_now()
        bind_context(school_period_id=period_id)
        try:
            return await self._execute(period_id, initiated_by, as_of)
        finally:
            unbind_context("school_period_id", "closure_id")

    async def _execute(
        self,
        period_id: int,
        initiated_by: int | None,
        as_of: datetime,
    ) -> ClosureExecutionResult:
        log: list[dict[str, Any]] = []

        await get_period(self.db, period_id, for_update=True)
        await self._ensure_not_closed(period_id)

        closure = PeriodClosure(
            school_period_id=period_id,
            status=ClosureStatus.DRAFT.value,
            initiated_by=initiated_by,
            started_at=utc_now(),
        )
        self.db.add(closure)
        await self.db.flush()
        closure_id = closure.id
        log.append(_log_entry("create", "ok", closure_id=closure_id, initiated_by=initiated_by))
        closure.log = list(log)
        await self.db.commit()

        bind_context(closure_id=closure_id)
        logger.info("closure_started", initiated_by=initiated_by)

        snapshot = await load_period_snapshot(self.db, period_id, self.settings)
        validation = validate_snapshot(snapshot)
        log.append(
            _log_entry(
                "validate",
                "ok" if validation.valid else "failed",
                errors=validation.errors,
                warnings=validation.warnings,
            )
        )
        if not validation.valid:
            await self._mark(closure_id, ClosureStatus.FAILED, log, finished=True)
            logger.warning("closure_rejected", errors=validation.errors)
            return ClosureExecutionResult(
                success=False,
                closure_id=closure_id,
                errors=validation.errors,
                warnings=validation.warnings,
                log=log,
            )

        await self._mark(closure_id, ClosureStatus.VALIDATING, log)

        try:
            stats = await asyncio.wait_for(
                self._apply(period_id, closure_id, log, as_of),
                timeout=self.settings.transaction_timeout_seconds,
            )
        except ClosureConflictError as exc:
            await self._fail(closure_id, log, str(exc))
            raise
        except (PeriodClosureError, SQLAlchemyError, asyncio.TimeoutError) as exc:
            message = self._describe(exc)
            await self._fail(closure_id, log, message)
            return ClosureExecutionResult(
                success=False,
                closure_id=closure_id,
                errors=[message],
                warnings=validation.warnings,
                log=log,
            )
        except Exception as exc:
            await self._fail(closure_id, log, self._describe(exc))
            raise

        logger.info(
            "closure_committed",
            total_students=stats.total_students,
            new_inscriptions=stats.new_inscriptions,
            pending_subjects_created=stats.pending_subjects_created,
        )

        return ClosureExecutionResult(
            success=True,
            closure_id=closure_id,
            stats=stats,
            warnings=validation.warnings,
            log=log,
        )

    async def _apply(
        self,
        period_id: int,
        closure_id: int,
        log: list[dict[str, Any]],
        as_of: datetime,
    ) -> ClosureStats:
        """Write every closure result in one transaction and commit it."""
        await get_period(self.db, period_id, for_update=True)
        await self._ensure_not_closed(period_id)

        snapshot = await load_period_snapshot(self.db, period_id, self.settings)
        validation = validate_snapshot(snapshot)
        if not validation.valid:
            raise ClosureValidationError(validation.errors, validation.warnings)

        outcomes = calculate_outcomes(
            snapshot.inscriptions,
            snapshot.rules,
            snapshot.aggregation_context,
            as_of,
        )
        log.append(
            _log_entry(
                "compute",
                "ok",
                students=len(outcomes),
                passing_threshold=str(snapshot.passing_threshold),
            )
        )

        subjects_finalized = await self._replace_results(period_id, closure_id, outcomes, as_of)
        new_inscriptions, pending_created = await self._promote(snapshot, outcomes, log)

        next_period_id = snapshot.next_period.id
        await self.db.execute(
            update(SchoolPeriod).where(SchoolPeriod.id == period_id).values(is_active=False)
        )
        await self.db.execute(
            update(SchoolPeriod).where(SchoolPeriod.id == next_period_id).values(is_active=True)
        )
        log.append(
            _log_entry("activate", "ok", closed_period_id=period_id, active_period_id=next_period_id)
        )

        stats = ClosureStats(
            total_students=len(outcomes),
            approved=sum(1 for o in outcomes if o.status is OutcomeStatus.APROBADO),
            with_pending_subjects=sum(
                1 for o in outcomes if o.status is OutcomeStatus.MATERIAS_PENDIENTES
            ),
            failed=sum(1 for o in outcomes if o.status is OutcomeStatus.REPROBADO),
            graduated=sum(1 for o in outcomes if o.is_graduated),
            subjects_finalized=subjects_finalized,
            new_inscriptions=new_inscriptions,
            pending_subjects_created=pending_created,
        )
        log.append(_log_entry("finalize", "ok"))

        await self.db.execute(
            update(PeriodClosure)
            .where(PeriodClosure.id == closure_id)
            .values(
                status=ClosureStatus.CLOSED.value,
                finished_at=utc_now(),
                log=list(log),
                snapshot={
                    **stats.model_dump(),
                    "passing_threshold": str(snapshot.passing_threshold),
                    "council_points_mode": snapshot.council_points_mode,
                    "next_period_id": next_period_id,
                },
            )
        )
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise ClosurePersistenceError(f"Database rejected the closure: {exc}") from exc

        return stats

    async def _replace_results(
        self,
        period_id: int,
        closure_id: int,
        outcomes: list[StudentOutcome],
        as_of: datetime,
    ) -> int:
        """Overwrite final grades and outcomes of the period's inscriptions."""
        inscription_ids = select(Inscription.id).where(Inscription.school_period_id == period_id)
        inscription_subject_ids = select(InscriptionSubject.id).where(
            InscriptionSubject.inscription_id.in_(inscription_ids)
        )
        await self.db.execute(
            delete(SubjectFinalGrade)
            .where(SubjectFinalGrade.inscription_subject_id.in_(inscription_subject_ids))
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(
            delete(StudentPeriodOutcome)
            .where(StudentPeriodOutcome.inscription_id.in_(inscription_ids))
            .execution_options(synchronize_session=False)
        )

        finalized = 0
        for outcome in outcomes:
            for result in outcome.subject_results:
                self.db.add(
                    SubjectFinalGrade(
                        inscription_subject_id=result.inscription_subject_id,
                        closure_id=closure_id,
                        raw_score=result.raw_score,
                        council_points=result.council_points,
                        final_score=result.final_score,
                        status=result.status.value,
                        calculated_at=as_of,
                    )
                )
                finalized += 1

            self.db.add(
                StudentPeriodOutcome(
                    inscription_id=outcome.inscription_id,
                    closure_id=closure_id,
                    final_average=outcome.final_average,
                    failed_subjects=outcome.failed_subjects,
                    status=outcome.status.value,
                    promotion_grade_id=outcome.promotion_grade_id,
                    graduated_at=outcome.graduated_at,
                    audit_metadata=dict(outcome.metadata),
                )
            )

        await self.db.flush()
        return finalized

    async def _promote(
        self,
        snapshot: PeriodSnapshot,
        outcomes: list[StudentOutcome],
        log: list[dict[str, Any]],
    ) -> tuple[int, int]:
        """Create next-period inscriptions and pending subjects.

        Returns:
            Tuple of (inscriptions created, pending subjects created).
        """
        next_period = snapshot.next_period
        if next_period is None:
            raise ClosureComputationError(
                f"No school period after {snapshot.period.name} to enroll students in"
            )

        created: list[tuple[StudentOutcome, Inscription]] = []
        for outcome in outcomes:
            if outcome.is_graduated:
                log.append(
                    _log_entry(
                        "promote",
                        "graduated",
                        inscription_id=outcome.inscription_id,
                        person_id=outcome.person_id,
                    )
                )
                continue

            target_grade_id, escolaridad = self._target(outcome)
            sections = snapshot.next_structure.get(target_grade_id)
            if sections is None:
                raise ClosureComputationError(
                    f"Grade {target_grade_id} is not offered in {next_period.name} "
                    f"(inscription {outcome.inscription_id})"
                )

            inscription = Inscription(
                person_id=outcome.person_id,
                school_period_id=next_period.id,
                grade_id=target_grade_id,
                section_id=outcome.section_id if outcome.section_id in sections else None,
                escolaridad=escolaridad.value,
                is_repeater=outcome.status is OutcomeStatus.REPROBADO,
                origin_period_id=snapshot.period.id,
            )
            self.db.add(inscription)
            created.append((outcome, inscription))

        await self.db.flush()

        pending_created = 0
        for outcome, inscription in created:
            pending = []
            if outcome.status is OutcomeStatus.MATERIAS_PENDIENTES:
                for result in outcome.pending_subjects:
                    self.db.add(
                        PendingSubject(
                            new_inscription_id=inscription.id,
                            subject_id=result.subject_id,
                            origin_period_id=snapshot.period.id,
                            status=PendingSubjectStatus.PENDIENTE.value,
                        )
                    )
                    pending.append(result.subject_id)
            pending_created += len(pending)
            log.append(
                _log_entry(
                    "promote",
                    outcome.status.value,
                    inscription_id=outcome.inscription_id,
                    person_id=outcome.person_id,
                    new_inscription_id=inscription.id,
                    grade_id=inscription.grade_id,
                    pending_subject_ids=pending,
                )
            )

        await self.db.flush()
        return len(created), pending_created

    @staticmethod
    def _target(outcome: StudentOutcome) -> tuple[int, Escolaridad]:
        if outcome.status is OutcomeStatus.REPROBADO:
            return outcome.grade_id, Escolaridad.REPITIENTE
        target = outcome.promotion_grade_id or outcome.grade_id
        if outcome.status is OutcomeStatus.MATERIAS_PENDIENTES:
            return target, Escolaridad.MATERIA_PENDIENTE
        return target, Escolaridad.REGULAR

    async def _ensure_not_closed(self, period_id: int) -> None:
        result = await self.db.execute(
            select(PeriodClosure.id)
            .where(
                PeriodClosure.school_period_id == period_id,
                PeriodClosure.status == ClosureStatus.CLOSED.value,
            )
            .limit(1)
        )
        closed_id = result.scalar_one_or_none()
        if closed_id is not None:
            raise ClosureConflictError(
                f"School period {period_id} is already closed (closure {closed_id})"
            )

    async def _mark(
        self,
        closure_id: int,
        status: ClosureStatus,
        log: list[dict[str, Any]],
        finished: bool = False,
    ) -> None:
        values: dict[str, Any] = {"status": status.value, "log": list(log)}
        if finished:
            values["finished_at"] = utc_now()
        await self.db.execute(
            update(PeriodClosure).where(PeriodClosure.id == closure_id).values(**values)
        )
        await self.db.commit()

    async def _fail(self, closure_id: int, log: list[dict[str, Any]], message: str) -> None:
        await self.db.rollback()
        log.append(_log_entry("rollback", "failed", error=message))
        await self._mark(closure_id, ClosureStatus.FAILED, log, finished=True)
        logger.error("closure_rolled_back", error=message)

    def _describe(self, exc: BaseException) -> str:
        if isinstance(exc, asyncio.TimeoutError):
            return (
                "Closure transaction exceeded "
                f"{self.settings.transaction_timeout_seconds:g} seconds"
            )
        if isinstance(exc, SQLAlchemyError):
            return f"Database rejected the closure: {exc}"
        if isinstance(exc, PeriodClosureError):
            return str(exc)
        return f"Unexpected error: {exc.__class__.__name__}: {exc}"
