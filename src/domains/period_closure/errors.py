# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions raised by the period closure domain.

All of them are recoverable at the operator level: fix the data and call
the operation again.
"""


class PeriodClosureError(Exception):
    """Base exception for period closure errors."""

    pass


class PeriodNotFoundError(PeriodClosureError):
    """Raised when the school period does not exist."""

    pass


class PendingSubjectNotFoundError(PeriodClosureError):
    """Raised when a pending subject does not exist."""

    pass


class ClosureValidationError(PeriodClosureError):
    """Raised when closure preconditions are not met.

    Attributes:
        errors: Blocking problems found by the validator.
        warnings: Non-blocking problems found by the validator.
    """

    def __init__(self, errors: list[str], warnings: list[str] | None = None) -> None:
        """Initialize the validation error.

        Args:
            errors: Blocking problems.
            warnings: Non-blocking problems.
        """
        super().__init__("; ".join(errors) or "Closure validation failed")
        self.errors = errors
        self.warnings = warnings or []


class ClosureComputationError(PeriodClosureError):
    """Raised when grade inputs are malformed and outcomes cannot be computed."""

    pass


class ClosureConflictError(PeriodClosureError):
    """Raised when the period has already been closed."""

    pass


class ClosurePersistenceError(PeriodClosureError):
    """Raised when the database rejects the closure transaction."""

    pass


class InvalidPendingSubjectTransitionError(PeriodClosureError):
    """Raised when a pending subject cannot move to the requested status."""

    pass
