# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response models for the period closure domain.

Scores are carried as Decimal with two places; in JSON mode they are
emitted as numbers.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from src.models.common import (
    ChecklistStatus,
    ClosureStatus,
    OutcomeStatus,
    PendingSubjectStatus,
    SubjectStatus,
)

Score = Annotated[
    Decimal,
    PlainSerializer(lambda value: float(value), return_type=float, when_used="json"),
]


# =============================================================================
# Checklist
# =============================================================================


class ChecklistScope(BaseModel):
    """Unique scope of a course council checklist entry."""

    model_config = ConfigDict(frozen=True)

    school_period_id: int = Field(description="School period ID")
    grade_id: int = Field(description="Grade ID")
    section_id: int = Field(description="Section ID")
    term_id: int = Field(description="Term ID")


class ChecklistEntryResponse(BaseModel):
    """Course council checklist entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    school_period_id: int
    grade_id: int
    section_id: int
    term_id: int
    status: ChecklistStatus
    completed_by: int | None = None
    completed_at: datetime | None = None


class ChecklistSummary(BaseModel):
    """Checklist completion counts for a period."""

    total: int = Field(description="Checklist entries registered for the period")
    done: int = Field(description="Entries signed off")


# =============================================================================
# Status
# =============================================================================


class PeriodSummary(BaseModel):
    """School period summary."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    start_year: int
    end_year: int
    is_active: bool


class PeriodClosureSummary(BaseModel):
    """A closure attempt as recorded in the audit trail."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    school_period_id: int
    status: ClosureStatus
    initiated_by: int | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    log: list[dict[str, Any]] | None = None
    snapshot: dict[str, Any] | None = None


class ClosureStatusResponse(BaseModel):
    """Readiness of a period for closure."""

    period: PeriodSummary = Field(description="Period being closed")
    closure: PeriodClosureSummary | None = Field(
        default=None, description="Most recent closure attempt"
    )
    checklist: ChecklistSummary = Field(description="Council checklist counts")
    blocked_terms: int = Field(description="Terms already blocked")
    total_terms: int = Field(description="Terms in the period")
    next_period: PeriodSummary | None = Field(
        default=None, description="Period that receives the new inscriptions"
    )


# =============================================================================
# Validation and preview
# =============================================================================


class ClosureValidationResult(BaseModel):
    """Outcome of the closure precondition checks."""

    valid: bool = Field(description="True when no errors were found")
    errors: list[str] = Field(default_factory=list, description="Blocking problems")
    warnings: list[str] = Field(default_factory=list, description="Non-blocking problems")


class GradeSummary(BaseModel):
    """Grade reference."""

    id: int
    name: str


class SubjectResultResponse(BaseModel):
    """Computed final grade of one subject."""

    inscription_subject_id: int
    subject_id: int
    subject_name: str | None = None
    raw_score: Score
    council_points: Score
    final_score: Score
    status: SubjectStatus
    has_qualifications: bool


class PreviewOutcome(BaseModel):
    """Computed outcome of one student, not persisted."""

    inscription_id: int
    person_id: int
    grade: GradeSummary | None = None
    section_id: int | None = None
    final_average: Score | None = None
    failed_subjects: int
    status: OutcomeStatus
    promotion_grade: GradeSummary | None = None
    graduated: bool = False
    subjects: list[SubjectResultResponse] = Field(default_factory=list)


# =============================================================================
# Execution
# =============================================================================


class ClosureStats(BaseModel):
    """Aggregate counters of a closure run."""

    total_students: int = 0
    approved: int = 0
    with_pending_subjects: int = 0
    failed: int = 0
    graduated: int = 0
    subjects_finalized: int = 0
    new_inscriptions: int = 0
    pending_subjects_created: int = 0


class ClosureExecutionResult(BaseModel):
    """Result returned to the operator after executing a closure."""

    success: bool
    closure_id: int | None = None
    stats: ClosureStats = Field(default_factory=ClosureStats)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    log: list[dict[str, Any]] = Field(default_factory=list)


# =============================================================================
# Post-closure
# =============================================================================


class PendingSubjectResponse(BaseModel):
    """A subject carried into the next period."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    new_inscription_id: int
    subject_id: int
    origin_period_id: int
    status: PendingSubjectStatus
    resolved_at: datetime | None = None


class PeriodOutcomeResponse(BaseModel):
    """Persisted outcome of one student for a closed period."""

    id: int
    inscription_id: int
    person_id: int
    grade_id: int
    section_id: int | None = None
    final_average: Score | None = None
    failed_subjects: int
    status: OutcomeStatus
    promotion_grade_id: int | None = None
    graduated_at: datetime | None = None
    metadata: dict[str, Any] | None = None
