# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Period closure domain package.

This package finalizes a school period:
- Consolidating qualifications and council points into final grades
- Deciding promotion, promotion with pending subjects, or retention
- Enrolling students in the next period
- Tracking pending subjects until they are resolved
"""

from src.domains.period_closure.errors import (
    ClosureComputationError,
    ClosureConflictError,
    ClosurePersistenceError,
    ClosureValidationError,
    InvalidPendingSubjectTransitionError,
    PendingSubjectNotFoundError,
    PeriodClosureError,
    PeriodNotFoundError,
)
from src.domains.period_closure.service import PeriodClosureService

__all__ = [
    "PeriodClosureService",
    "PeriodClosureError",
    "PeriodNotFoundError",
    "PendingSubjectNotFoundError",
    "ClosureValidationError",
    "ClosureComputationError",
    "ClosureConflictError",
    "ClosurePersistenceError",
    "InvalidPendingSubjectTransitionError",
]
