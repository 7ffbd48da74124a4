# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for the academic records database.

Importing this package registers every table on ``Base.metadata``.
"""

from src.infrastructure.database.models.academic import (
    CouncilPoint,
    EvaluationPlan,
    Grade,
    Inscription,
    InscriptionSubject,
    PeriodGrade,
    PeriodGradeSection,
    Qualification,
    SchoolPeriod,
    Section,
    Setting,
    Subject,
    Term,
)
from src.infrastructure.database.models.base import Base, TimestampMixin
from src.infrastructure.database.models.closure import (
    CouncilChecklist,
    PendingSubject,
    PeriodClosure,
    SchoolPeriodTransitionRule,
    StudentPeriodOutcome,
    SubjectFinalGrade,
)

__all__ = [
    "Base",
    "TimestampMixin",
    # Academic catalog and grade entry
    "SchoolPeriod",
    "Term",
    "Grade",
    "Section",
    "Subject",
    "PeriodGrade",
    "PeriodGradeSection",
    "Inscription",
    "InscriptionSubject",
    "EvaluationPlan",
    "Qualification",
    "CouncilPoint",
    "Setting",
    # Period closure
    "SubjectFinalGrade",
    "StudentPeriodOutcome",
    "PendingSubject",
    "SchoolPeriodTransitionRule",
    "CouncilChecklist",
    "PeriodClosure",
]
