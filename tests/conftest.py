# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests
"""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.config.settings import ClosureSettings, clear_settings_cache
from src.domains.period_closure.grade_aggregator import (
    AggregationContext,
    CouncilPointInput,
    QualificationInput,
    SubjectInput,
)


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Drop cached settings so environment overrides apply per test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def closure_settings() -> ClosureSettings:
    """Provide closure settings with default thresholds."""
    return ClosureSettings(
        passing_threshold=Decimal("10"),
        default_min_average=Decimal("10"),
        council_points_mode="closing_term",
        transaction_timeout_seconds=30,
    )


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires a database)"
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def mock_db():
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    db.get = AsyncMock()
    return db


@pytest.fixture
def as_of() -> datetime:
    """Provide a fixed evaluation timestamp."""
    return datetime(2025, 7, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def aggregation_context() -> AggregationContext:
    """Provide a three-term context with term 3 closing the period."""
    return AggregationContext(
        term_ids=frozenset({1, 2, 3}),
        closing_term_id=3,
        passing_threshold=Decimal("10"),
    )


@pytest.fixture
def make_subject():
    """Provide a factory for subject grade inputs.

    The factory takes ``(score, percentage, term_id)`` triples and
    ``(term_id, points)`` council point pairs, all as plain literals.
    """

    def factory(
        inscription_subject_id: int,
        qualifications: list[tuple[str, str, int | None]] = (),
        council_points: list[tuple[int, int]] = (),
        subject_id: int | None = None,
    ) -> SubjectInput:
        return SubjectInput(
            inscription_subject_id=inscription_subject_id,
            subject_id=subject_id if subject_id is not None else inscription_subject_id,
            subject_name=f"Subject {inscription_subject_id}",
            qualifications=tuple(
                QualificationInput(
                    qualification_id=inscription_subject_id * 100 + index,
                    score=Decimal(score),
                    percentage=Decimal(percentage) if percentage is not None else None,
                    term_id=term_id,
                )
                for index, (score, percentage, term_id) in enumerate(qualifications)
            ),
            council_points=tuple(
                CouncilPointInput(term_id=term_id, points=Decimal(points))
                for term_id, points in council_points
            ),
        )

    return factory
