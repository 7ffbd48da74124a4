# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Models owned by the period closure engine.

Rows in these tables are written exclusively by the closure domain:
- subject_final_grades: consolidated score per inscription subject
- student_period_outcomes: promotion decision per inscription
- pending_subjects: failed subjects carried into the next period
- school_period_transition_rules: promotion configuration per grade
- council_checklists: course council sign-off per grade/section/term
- period_closures: audit trail of every closure attempt
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    SmallInteger,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.academic import Inscription, InscriptionSubject, Subject
from src.infrastructure.database.models.base import (
    Base,
    JSONType,
    ScoreType,
    TimestampMixin,
)
from src.utils.datetime import utc_now


class SubjectFinalGrade(Base, TimestampMixin):
    """Final consolidated score of one inscription subject."""

    __tablename__ = "subject_final_grades"
    __table_args__ = (
        UniqueConstraint(
            "inscription_subject_id", name="uq_subject_final_grades_inscription_subject"
        ),
        CheckConstraint(
            "status IN ('aprobada', 'reprobada')",
            name="chk_subject_final_grades_status",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    inscription_subject_id: Mapped[int] = mapped_column(
        ForeignKey("inscription_subjects.id", ondelete="CASCADE"), nullable=False
    )
    closure_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("period_closures.id", ondelete="SET NULL"), nullable=True
    )
    raw_score: Mapped[Decimal] = mapped_column(ScoreType, nullable=False)
    council_points: Mapped[Decimal] = mapped_column(ScoreType, nullable=False, default=Decimal("0"))
    final_score: Mapped[Decimal] = mapped_column(ScoreType, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    inscription_subject: Mapped[InscriptionSubject] = relationship()


class StudentPeriodOutcome(Base, TimestampMixin):
    """Promotion decision for one inscription at period closure."""

    __tablename__ = "student_period_outcomes"
    __table_args__ = (
        UniqueConstraint("inscription_id", name="uq_student_period_outcomes_inscription"),
        CheckConstraint(
            "status IN ('aprobado', 'materias_pendientes', 'reprobado')",
            name="chk_student_period_outcomes_status",
        ),
        CheckConstraint("failed_subjects >= 0", name="chk_student_period_outcomes_failed"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    inscription_id: Mapped[int] = mapped_column(
        ForeignKey("inscriptions.id", ondelete="CASCADE"), nullable=False
    )
    closure_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("period_closures.id", ondelete="SET NULL"), nullable=True
    )
    final_average: Mapped[Optional[Decimal]] = mapped_column(ScoreType, nullable=True)
    failed_subjects: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    promotion_grade_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("grades.id", ondelete="SET NULL"), nullable=True
    )
    graduated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    # "metadata" is reserved on declarative classes.
    audit_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(
        "metadata", JSONType, nullable=True
    )

    inscription: Mapped[Inscription] = relationship()


class PendingSubject(Base, TimestampMixin):
    """A failed subject a student carries into the following period."""

    __tablename__ = "pending_subjects"
    __table_args__ = (
        UniqueConstraint(
            "new_inscription_id", "subject_id", name="uq_pending_subjects_inscription_subject"
        ),
        CheckConstraint(
            "status IN ('pendiente', 'aprobada', 'convalidada')",
            name="chk_pending_subjects_status",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    new_inscription_id: Mapped[int] = mapped_column(
        ForeignKey("inscriptions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject_id: Mapped[int] = mapped_column(ForeignKey("subjects.id"), nullable=False)
    origin_period_id: Mapped[int] = mapped_column(
        ForeignKey("school_periods.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pendiente")
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    inscription: Mapped[Inscription] = relationship()
    subject: Mapped[Subject] = relationship()


class SchoolPeriodTransitionRule(Base, TimestampMixin):
    """Promotion thresholds for students leaving a grade."""

    __tablename__ = "school_period_transition_rules"
    __table_args__ = (
        UniqueConstraint("grade_from_id", name="uq_transition_rules_grade_from"),
        CheckConstraint(
            "max_pending_subjects >= 0", name="chk_transition_rules_max_pending"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    grade_from_id: Mapped[int] = mapped_column(
        ForeignKey("grades.id", ondelete="CASCADE"), nullable=False
    )
    grade_to_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("grades.id", ondelete="SET NULL"), nullable=True
    )
    min_average: Mapped[Decimal] = mapped_column(ScoreType, nullable=False, default=Decimal("10"))
    max_pending_subjects: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    auto_graduate: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class CouncilChecklist(Base, TimestampMixin):
    """Course council sign-off for one grade, section and term."""

    __tablename__ = "council_checklists"
    __table_args__ = (
        UniqueConstraint(
            "school_period_id",
            "grade_id",
            "section_id",
            "term_id",
            name="uq_council_checklists_scope",
        ),
        CheckConstraint(
            "status IN ('open', 'in_review', 'done')",
            name="chk_council_checklists_status",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    school_period_id: Mapped[int] = mapped_column(
        ForeignKey("school_periods.id", ondelete="CASCADE"), nullable=False, index=True
    )
    grade_id: Mapped[int] = mapped_column(ForeignKey("grades.id", ondelete="CASCADE"), nullable=False)
    section_id: Mapped[int] = mapped_column(
        ForeignKey("sections.id", ondelete="CASCADE"), nullable=False
    )
    term_id: Mapped[int] = mapped_column(ForeignKey("terms.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="open", index=True)
    completed_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class PeriodClosure(Base, TimestampMixin):
    """One closure attempt for a school period.

    Attempts are never deleted; retries create new rows so the table
    doubles as the audit trail of the closure process.
    """

    __tablename__ = "period_closures"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'validating', 'closed', 'failed')",
            name="chk_period_closures_status",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    school_period_id: Mapped[int] = mapped_column(
        ForeignKey("school_periods.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", index=True)
    initiated_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    log: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(JSONType, nullable=True)
    snapshot: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
