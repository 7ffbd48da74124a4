# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create period closure engine tables.

This migration creates the tables written by the period closure engine:
- period_closures: one audit row per closure attempt
- council_checklists: council sign-off per grade/section/term
- school_period_transition_rules: promotion thresholds per grade
- subject_final_grades: consolidated subject scores
- student_period_outcomes: promotion decisions
- pending_subjects: failed subjects carried into the next period

Revision ID: 002_period_closure
Revises: 001_academic_records
Create Date: 2025-12-27
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "002_period_closure"
down_revision: Union[str, None] = "001_academic_records"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


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
    """Create period closure tables."""

    # =========================================================================
    # Create period_closures table
    # =========================================================================
    op.create_table(
        "period_closures",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "school_period_id",
            sa.Integer(),
            sa.ForeignKey("school_periods.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("initiated_by", sa.Integer(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("log", JSON, nullable=True),
        sa.Column("snapshot", JSON, nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('draft', 'validating', 'closed', 'failed')",
            name="chk_period_closures_status",
        ),
    )
    op.create_index("ix_period_closures_school_period_id", "period_closures", ["school_period_id"])
    op.create_index("ix_period_closures_status", "period_closures", ["status"])

    # =========================================================================
    # Create council_checklists table
    # =========================================================================
    op.create_table(
        "council_checklists",
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
        sa.Column(
            "section_id",
            sa.Integer(),
            sa.ForeignKey("sections.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "term_id",
            sa.Integer(),
            sa.ForeignKey("terms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="open"),
        sa.Column("completed_by", sa.Integer(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "school_period_id",
            "grade_id",
            "section_id",
            "term_id",
            name="uq_council_checklists_scope",
        ),
        sa.CheckConstraint(
            "status IN ('open', 'in_review', 'done')",
            name="chk_council_checklists_status",
        ),
    )
    op.create_index(
        "ix_council_checklists_school_period_id", "council_checklists", ["school_period_id"]
    )
    op.create_index("ix_council_checklists_status", "council_checklists", ["status"])

    # =========================================================================
    # Create school_period_transition_rules table
    # =========================================================================
    op.create_table(
        "school_period_transition_rules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "grade_from_id",
            sa.Integer(),
            sa.ForeignKey("grades.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "grade_to_id",
            sa.Integer(),
            sa.ForeignKey("grades.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("min_average", sa.Numeric(5, 2), nullable=False, server_default="10"),
        sa.Column("max_pending_subjects", sa.SmallInteger(), nullable=False, server_default="0"),
        sa.Column("auto_graduate", sa.Boolean(), nullable=False, server_default="false"),
        *_timestamps(),
        sa.UniqueConstraint("grade_from_id", name="uq_transition_rules_grade_from"),
        sa.CheckConstraint(
            "max_pending_subjects >= 0", name="chk_transition_rules_max_pending"
        ),
    )

    # =========================================================================
    # Create subject_final_grades table
    # =========================================================================
    op.create_table(
        "subject_final_grades",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "inscription_subject_id",
            sa.Integer(),
            sa.ForeignKey("inscription_subjects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "closure_id",
            sa.Integer(),
            sa.ForeignKey("period_closures.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("raw_score", sa.Numeric(5, 2), nullable=False),
        sa.Column("council_points", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("final_score", sa.Numeric(5, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column(
            "calculated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        *_timestamps(),
        sa.UniqueConstraint(
            "inscription_subject_id", name="uq_subject_final_grades_inscription_subject"
        ),
        sa.CheckConstraint(
            "status IN ('aprobada', 'reprobada')",
            name="chk_subject_final_grades_status",
        ),
    )

    # =========================================================================
    # Create student_period_outcomes table
    # =========================================================================
    op.create_table(
        "student_period_outcomes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "inscription_id",
            sa.Integer(),
            sa.ForeignKey("inscriptions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "closure_id",
            sa.Integer(),
            sa.ForeignKey("period_closures.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("final_average", sa.Numeric(5, 2), nullable=True),
        sa.Column("failed_subjects", sa.SmallInteger(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column(
            "promotion_grade_id",
            sa.Integer(),
            sa.ForeignKey("grades.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("graduated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", JSON, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("inscription_id", name="uq_student_period_outcomes_inscription"),
        sa.CheckConstraint(
            "status IN ('aprobado', 'materias_pendientes', 'reprobado')",
            name="chk_student_period_outcomes_status",
        ),
        sa.CheckConstraint("failed_subjects >= 0", name="chk_student_period_outcomes_failed"),
    )

    # =========================================================================
    # Create pending_subjects table
    # =========================================================================
    op.create_table(
        "pending_subjects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "new_inscription_id",
            sa.Integer(),
            sa.ForeignKey("inscriptions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("subject_id", sa.Integer(), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column(
            "origin_period_id",
            sa.Integer(),
            sa.ForeignKey("school_periods.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="pendiente"),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "new_inscription_id", "subject_id", name="uq_pending_subjects_inscription_subject"
        ),
        sa.CheckConstraint(
            "status IN ('pendiente', 'aprobada', 'convalidada')",
            name="chk_pending_subjects_status",
        ),
    )
    op.create_index(
        "ix_pending_subjects_new_inscription_id", "pending_subjects", ["new_inscription_id"]
    )


def downgrade() -> None:
    """Drop period closure tables."""
    op.drop_table("pending_subjects")
    op.drop_table("student_period_outcomes")
    op.drop_table("subject_final_grades")
    op.drop_table("school_period_transition_rules")
    op.drop_table("council_checklists")
    op.drop_table("period_closures")
