# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create academic catalog and grade-entry tables.

This migration creates the tables the period closure engine reads:
- school_periods, terms: the school year and its grading terms
- grades, sections, subjects: catalogs
- period_grades, period_grade_sections: structure offered per period
- inscriptions, inscription_subjects: student enrollment
- evaluation_plans, qualifications, council_points: grade inputs
- settings: key/value platform settings

Revision ID: 001_academic_records
Revises:
Create Date: 2025-12-27
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_academic_records"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    """Create catalog, enrollment and grade-entry tables."""

    # =========================================================================
    # Catalogs
    # =========================================================================
    op.create_table(
        "school_periods",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("start_year", sa.Integer(), nullable=False),
        sa.Column("end_year", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="false"),
        *_timestamps(),
    )

    op.create_table(
        "terms",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "school_period_id",
            sa.Integer(),
            sa.ForeignKey("school_periods.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_blocked", sa.Boolean(), nullable=False, server_default="false"),
        *_timestamps(),
        sa.UniqueConstraint("school_period_id", "order", name="uq_terms_period_order"),
    )
    op.create_index("ix_terms_school_period_id", "terms", ["school_period_id"])

    op.create_table(
        "grades",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("order", sa.Integer(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "sections",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "subjects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(150), nullable=False),
        *_timestamps(),
    )

    # =========================================================================
    # Period structure
    # =========================================================================
    op.create_table(
        "period_grades",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "school_period_id",
            sa.Integer(),
            sa.ForeignKey("school_periods.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "grade_id",
            sa.Integer(),
            sa.ForeignKey("grades.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_timestamps(),
        sa.UniqueConstraint("school_period_id", "grade_id", name="uq_period_grades_period_grade"),
    )
    op.create_index("ix_period_grades_school_period_id", "period_grades", ["school_period_id"])

    op.create_table(
        "period_grade_sections",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "period_grade_id",
            sa.Integer(),
            sa.ForeignKey("period_grades.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "section_id",
            sa.Integer(),
            sa.ForeignKey("sections.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_timestamps(),
        sa.UniqueConstraint("period_grade_id", "section_id", name="uq_period_grade_sections"),
    )
    op.create_index(
        "ix_period_grade_sections_period_grade_id", "period_grade_sections", ["period_grade_id"]
    )

    # =========================================================================
    # Enrollment
    # =========================================================================
    op.create_table(
        "inscriptions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("person_id", sa.Integer(), nullable=False),
        sa.Column(
            "school_period_id",
            sa.Integer(),
            sa.ForeignKey("school_periods.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("grade_id", sa.Integer(), sa.ForeignKey("grades.id"), nullable=False),
        sa.Column(
            "section_id",
            sa.Integer(),
            sa.ForeignKey("sections.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("escolaridad", sa.String(20), nullable=False, server_default="regular"),
        sa.Column("is_repeater", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "origin_period_id",
            sa.Integer(),
            sa.ForeignKey("school_periods.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.UniqueConstraint("person_id", "school_period_id", name="uq_inscriptions_person_period"),
        sa.CheckConstraint(
            "escolaridad IN ('regular', 'repitiente', 'materia_pendiente')",
            name="chk_inscriptions_escolaridad",
        ),
    )
    op.create_index("ix_inscriptions_person_id", "inscriptions", ["person_id"])
    op.create_index("ix_inscriptions_school_period_id", "inscriptions", ["school_period_id"])

    op.create_table(
        "inscription_subjects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "inscription_id",
            sa.Integer(),
            sa.ForeignKey("inscriptions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("subject_id", sa.Integer(), sa.ForeignKey("subjects.id"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("inscription_id", "subject_id", name="uq_inscription_subjects"),
    )
    op.create_index(
        "ix_inscription_subjects_inscription_id", "inscription_subjects", ["inscription_id"]
    )

    # =========================================================================
    # Grade entry
    # =========================================================================
    op.create_table(
        "evaluation_plans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("subject_id", sa.Integer(), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column(
            "term_id",
            sa.Integer(),
            sa.ForeignKey("terms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "percentage > 0 AND percentage <= 100", name="chk_evaluation_plans_percentage"
        ),
    )
    op.create_index("ix_evaluation_plans_term_id", "evaluation_plans", ["term_id"])

    op.create_table(
        "qualifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "evaluation_plan_id",
            sa.Integer(),
            sa.ForeignKey("evaluation_plans.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "inscription_subject_id",
            sa.Integer(),
            sa.ForeignKey("inscription_subjects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("score", sa.Numeric(5, 2), nullable=False),
        sa.Column("observations", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "evaluation_plan_id", "inscription_subject_id", name="uq_qualifications_plan_subject"
        ),
        sa.CheckConstraint("score >= 0 AND score <= 20", name="chk_qualifications_score"),
    )
    op.create_index(
        "ix_qualifications_inscription_subject_id", "qualifications", ["inscription_subject_id"]
    )

    op.create_table(
        "council_points",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "inscription_subject_id",
            sa.Integer(),
            sa.ForeignKey("inscription_subjects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "term_id",
            sa.Integer(),
            sa.ForeignKey("terms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("observations", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "inscription_subject_id", "term_id", name="uq_council_points_subject_term"
        ),
    )
    op.create_index(
        "ix_council_points_inscription_subject_id", "council_points", ["inscription_subject_id"]
    )

    op.create_table(
        "settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        *_timestamps(),
    )


def downgrade() -> None:
    """Drop catalog, enrollment and grade-entry tables."""
    op.drop_table("settings")
    op.drop_table("council_points")
    op.drop_table("qualifications")
    op.drop_table("evaluation_plans")
    op.drop_table("inscription_subjects")
    op.drop_table("inscriptions")
    op.drop_table("period_grade_sections")
    op.drop_table("period_grades")
    op.drop_table("subjects")
    op.drop_table("sections")
    op.drop_table("grades")
    op.drop_table("terms")
    op.drop_table("school_periods")
