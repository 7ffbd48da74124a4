# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared enumerations for academic records.

Enum values match the strings stored in the database, so members can be
written directly into ORM columns and compared against column values.
"""

from enum import Enum


class SubjectStatus(str, Enum):
    """Final status of a subject after closure."""

    APROBADA = "aprobada"
    REPROBADA = "reprobada"


class OutcomeStatus(str, Enum):
    """Promotion decision for a student at period closure."""

    APROBADO = "aprobado"
    MATERIAS_PENDIENTES = "materias_pendientes"
    REPROBADO = "reprobado"


class PendingSubjectStatus(str, Enum):
    """Lifecycle of a subject carried into the next period."""

    PENDIENTE = "pendiente"
    APROBADA = "aprobada"
    CONVALIDADA = "convalidada"


class ChecklistStatus(str, Enum):
    """Course council sign-off state."""

    OPEN = "open"
    IN_REVIEW = "in_review"
    DONE = "done"


class ClosureStatus(str, Enum):
    """State of a period closure attempt."""

    DRAFT = "draft"
    VALIDATING = "validating"
    CLOSED = "closed"
    FAILED = "failed"


class Escolaridad(str, Enum):
    """Enrollment condition of an inscription."""

    REGULAR = "regular"
    REPITIENTE = "repitiente"
    MATERIA_PENDIENTE = "materia_pendiente"
