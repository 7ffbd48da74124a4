# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for database models.

Tests model definitions, constraints, and column mappings.
"""

from sqlalchemy import CheckConstraint, UniqueConstraint

from src.infrastructure.database.models import (
    Base,
    CouncilChecklist,
    EvaluationPlan,
    Inscription,
    PendingSubject,
    PeriodClosure,
    Qualification,
    SchoolPeriodTransitionRule,
    StudentPeriodOutcome,
    SubjectFinalGrade,
    TimestampMixin,
)


def unique_columns(model) -> set[tuple[str, ...]]:
    """Collect the column sets of a model's unique constraints."""
    return {
        tuple(column.name for column in constraint.columns)
        for constraint in model.__table__.constraints
        if isinstance(constraint, UniqueConstraint)
    } | {
        (column.name,)
        for column in model.__table__.columns
        if column.unique
    }


def check_names(model) -> set[str]:
    """Collect the names of a model's check constraints."""
    return {
        constraint.name
        for constraint in model.__table__.constraints
        if isinstance(constraint, CheckConstraint)
    }


class TestBase:
    """Test base model functionality."""

    def test_base_inherits_declarative_base(self):
        """Verify Base is a declarative base."""
        assert hasattr(Base, "metadata")
        assert hasattr(Base, "registry")

    def test_timestamp_mixin_has_created_at(self):
        """Verify TimestampMixin has created_at field."""
        assert hasattr(TimestampMixin, "created_at")
        assert hasattr(TimestampMixin, "updated_at")

    def test_all_tables_registered(self):
        """Verify every table of the schema is part of the metadata."""
        assert {
            "school_periods",
            "terms",
            "grades",
            "sections",
            "subjects",
            "period_grades",
            "period_grade_sections",
            "inscriptions",
            "inscription_subjects",
            "evaluation_plans",
            "qualifications",
            "council_points",
            "settings",
            "subject_final_grades",
            "student_period_outcomes",
            "pending_subjects",
            "school_period_transition_rules",
            "council_checklists",
            "period_closures",
        } <= set(Base.metadata.tables)


class TestAcademicModels:
    """Test catalog and grade-entry models."""

    def test_inscription_unique_per_person_and_period(self):
        """Verify a person has one inscription per period."""
        assert ("person_id", "school_period_id") in unique_columns(Inscription)
        assert "chk_inscriptions_escolaridad" in check_names(Inscription)

    def test_evaluation_plan_date_column(self):
        """Verify the evaluation date attribute maps to the date column."""
        assert EvaluationPlan.evaluation_date.property.columns[0].name == "date"

    def test_qualification_plan_is_nullable(self):
        """Verify deleting a plan orphans its qualifications instead of removing them."""
        column = Qualification.__table__.c.evaluation_plan_id
        assert column.nullable is True
        assert next(iter(column.foreign_keys)).ondelete == "SET NULL"


class TestClosureModels:
    """Test models written by the closure engine."""

    def test_subject_final_grade_unique_per_inscription_subject(self):
        """Verify one final grade per inscription subject."""
        assert ("inscription_subject_id",) in unique_columns(SubjectFinalGrade)

    def test_outcome_unique_per_inscription(self):
        """Verify one outcome per inscription."""
        assert ("inscription_id",) in unique_columns(StudentPeriodOutcome)
        assert {
            "chk_student_period_outcomes_status",
            "chk_student_period_outcomes_failed",
        } <= check_names(StudentPeriodOutcome)

    def test_outcome_metadata_column_name(self):
        """Verify the audit attribute is stored in the metadata column."""
        assert "metadata" in StudentPeriodOutcome.__table__.c
        assert StudentPeriodOutcome.audit_metadata.property.columns[0].name == "metadata"

    def test_pending_subject_unique_per_new_inscription(self):
        """Verify a subject is pending at most once per inscription."""
        assert ("new_inscription_id", "subject_id") in unique_columns(PendingSubject)

    def test_transition_rule_unique_per_grade(self):
        """Verify a grade has at most one transition rule."""
        assert ("grade_from_id",) in unique_columns(SchoolPeriodTransitionRule)
        assert SchoolPeriodTransitionRule.__table__.c.grade_to_id.nullable is True

    def test_checklist_scope_is_unique(self):
        """Verify one checklist entry per grade, section and term."""
        assert ("school_period_id", "grade_id", "section_id", "term_id") in unique_columns(
            CouncilChecklist
        )

    def test_period_closure_is_not_unique_per_period(self):
        """Verify every attempt gets its own row."""
        assert ("school_period_id",) not in unique_columns(PeriodClosure)
        assert "chk_period_closures_status" in check_names(PeriodClosure)
