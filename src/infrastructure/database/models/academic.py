# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic catalog and grade-entry models.

These tables are owned by the catalog and grade-entry features of the
platform. The period closure engine only reads them, with one exception:
it creates next-period Inscription rows when a closure commits.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import Base, ScoreType, TimestampMixin


class SchoolPeriod(Base, TimestampMixin):
    """A school year containing ordered terms."""

    __tablename__ = "school_periods"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_year: Mapped[int] = mapped_column(Integer, nullable=False)
    end_year: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    terms: Mapped[list["Term"]] = relationship(back_populates="school_period")


class Term(Base, TimestampMixin):
    """A grading term (lapso) within a school period."""

    __tablename__ = "terms"
    __table_args__ = (
        UniqueConstraint("school_period_id", "order", name="uq_terms_period_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    school_period_id: Mapped[int] = mapped_column(
        ForeignKey("school_periods.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_blocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    school_period: Mapped[SchoolPeriod] = relationship(back_populates="terms")


class Grade(Base, TimestampMixin):
    """A grade level (e.g. 1st year)."""

    __tablename__ = "grades"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    order: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class Section(Base, TimestampMixin):
    """A class section (e.g. "A")."""

    __tablename__ = "sections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)


class Subject(Base, TimestampMixin):
    """A subject taught in one or more grades."""

    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)


class PeriodGrade(Base, TimestampMixin):
    """A grade offered in a given school period."""

    __tablename__ = "period_grades"
    __table_args__ = (
        UniqueConstraint("school_period_id", "grade_id", name="uq_period_grades_period_grade"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    school_period_id: Mapped[int] = mapped_column(
        ForeignKey("school_periods.id", ondelete="CASCADE"), nullable=False, index=True
    )
    grade_id: Mapped[int] = mapped_column(
        ForeignKey("grades.id", ondelete="CASCADE"), nullable=False
    )


class PeriodGradeSection(Base, TimestampMixin):
    """A section offered for a grade in a given school period."""

    __tablename__ = "period_grade_sections"
    __table_args__ = (
        UniqueConstraint("period_grade_id", "section_id", name="uq_period_grade_sections"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    period_grade_id: Mapped[int] = mapped_column(
        ForeignKey("period_grades.id", ondelete="CASCADE"), nullable=False, index=True
    )
    section_id: Mapped[int] = mapped_column(
        ForeignKey("sections.id", ondelete="CASCADE"), nullable=False
    )


class Inscription(Base, TimestampMixin):
    """A student's enrollment in a school period at a grade and section."""

    __tablename__ = "inscriptions"
    __table_args__ = (
        UniqueConstraint("person_id", "school_period_id", name="uq_inscriptions_person_period"),
        CheckConstraint(
            "escolaridad IN ('regular', 'repitiente', 'materia_pendiente')",
            name="chk_inscriptions_escolaridad",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    person_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    school_period_id: Mapped[int] = mapped_column(
        ForeignKey("school_periods.id", ondelete="CASCADE"), nullable=False, index=True
    )
    grade_id: Mapped[int] = mapped_column(ForeignKey("grades.id"), nullable=False)
    section_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("sections.id", ondelete="SET NULL"), nullable=True
    )
    escolaridad: Mapped[str] = mapped_column(String(20), nullable=False, default="regular")
    is_repeater: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    origin_period_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("school_periods.id", ondelete="SET NULL"), nullable=True
    )

    subjects: Mapped[list["InscriptionSubject"]] = relationship(
        back_populates="inscription",
        order_by="InscriptionSubject.id",
    )


class InscriptionSubject(Base, TimestampMixin):
    """A subject a student takes under one inscription."""

    __tablename__ = "inscription_subjects"
    __table_args__ = (
        UniqueConstraint("inscription_id", "subject_id", name="uq_inscription_subjects"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    inscription_id: Mapped[int] = mapped_column(
        ForeignKey("inscriptions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject_id: Mapped[int] = mapped_column(ForeignKey("subjects.id"), nullable=False)

    inscription: Mapped[Inscription] = relationship(back_populates="subjects")
    subject: Mapped[Subject] = relationship()
    qualifications: Mapped[list["Qualification"]] = relationship(
        back_populates="inscription_subject",
        order_by="Qualification.id",
    )
    council_points: Mapped[list["CouncilPoint"]] = relationship(
        order_by="CouncilPoint.id",
    )


class EvaluationPlan(Base, TimestampMixin):
    """A weighted evaluation item of a subject within a term."""

    __tablename__ = "evaluation_plans"
    __table_args__ = (
        CheckConstraint(
            "percentage > 0 AND percentage <= 100", name="chk_evaluation_plans_percentage"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject_id: Mapped[int] = mapped_column(ForeignKey("subjects.id"), nullable=False)
    term_id: Mapped[int] = mapped_column(
        ForeignKey("terms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    percentage: Mapped[Decimal] = mapped_column(ScoreType, nullable=False)
    evaluation_date: Mapped[Optional[date]] = mapped_column("date", Date, nullable=True)


class Qualification(Base, TimestampMixin):
    """A student's score against one evaluation plan item."""

    __tablename__ = "qualifications"
    __table_args__ = (
        UniqueConstraint(
            "evaluation_plan_id", "inscription_subject_id", name="uq_qualifications_plan_subject"
        ),
        CheckConstraint("score >= 0 AND score <= 20", name="chk_qualifications_score"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Nullable so that deleting a plan leaves an orphan the closure can detect.
    evaluation_plan_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("evaluation_plans.id", ondelete="SET NULL"), nullable=True
    )
    inscription_subject_id: Mapped[int] = mapped_column(
        ForeignKey("inscription_subjects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    score: Mapped[Decimal] = mapped_column(ScoreType, nullable=False)
    observations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    inscription_subject: Mapped[InscriptionSubject] = relationship(
        back_populates="qualifications"
    )
    evaluation_plan: Mapped[Optional[EvaluationPlan]] = relationship()


class CouncilPoint(Base, TimestampMixin):
    """Discretionary points voted by the course council for one term."""

    __tablename__ = "council_points"
    __table_args__ = (
        UniqueConstraint("inscription_subject_id", "term_id", name="uq_council_points_subject_term"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    inscription_subject_id: Mapped[int] = mapped_column(
        ForeignKey("inscription_subjects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    term_id: Mapped[int] = mapped_column(
        ForeignKey("terms.id", ondelete="CASCADE"), nullable=False
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    observations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Setting(Base, TimestampMixin):
    """Key/value platform settings editable by administrators."""

    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
