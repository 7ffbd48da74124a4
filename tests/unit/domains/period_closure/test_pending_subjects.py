# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for pending subject resolution."""

from datetime import datetime, timezone

import pytest

from src.domains.period_closure.errors import (
    InvalidPendingSubjectTransitionError,
    PendingSubjectNotFoundError,
)
from src.domains.period_closure.pending_subjects import PendingSubjectService
from src.infrastructure.database.models import PendingSubject
from src.models.common import PendingSubjectStatus


@pytest.fixture
def pending_service(mock_db):
    """Create pending subject service with mock database."""
    return PendingSubjectService(db=mock_db)


@pytest.fixture
def pending_subject() -> PendingSubject:
    """Create an unresolved pending subject."""
    return PendingSubject(
        id=1,
        new_inscription_id=20,
        subject_id=3,
        origin_period_id=1,
        status=PendingSubjectStatus.PENDIENTE.value,
    )


class TestResolve:
    """Tests for resolving pending subjects."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status", [PendingSubjectStatus.APROBADA, PendingSubjectStatus.CONVALIDADA]
    )
    async def test_resolves_pending_subject(
        self, pending_service, mock_db, pending_subject, status
    ):
        """Verify a pending subject can be approved or validated."""
        mock_db.get.return_value = pending_subject

        result = await pending_service.resolve(1, status)

        mock_db.commit.assert_awaited_once()
        assert result.status is status
        assert result.resolved_at is not None

    @pytest.mark.asyncio
    async def test_accepts_plain_status_string(self, pending_service, mock_db, pending_subject):
        """Verify status values can be given as stored strings."""
        mock_db.get.return_value = pending_subject

        result = await pending_service.resolve(1, "aprobada")

        assert result.status is PendingSubjectStatus.APROBADA

    @pytest.mark.asyncio
    async def test_already_resolved(self, pending_service, mock_db, pending_subject):
        """Verify a resolved subject cannot be resolved again."""
        pending_subject.status = PendingSubjectStatus.APROBADA.value
        pending_subject.resolved_at = datetime(2025, 9, 1, tzinfo=timezone.utc)
        mock_db.get.return_value = pending_subject

        with pytest.raises(InvalidPendingSubjectTransitionError, match="already aprobada"):
            await pending_service.resolve(1, PendingSubjectStatus.CONVALIDADA)

        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_cannot_reopen(self, pending_service, mock_db):
        """Verify pendiente is not a valid resolution."""
        with pytest.raises(InvalidPendingSubjectTransitionError):
            await pending_service.resolve(1, PendingSubjectStatus.PENDIENTE)

        mock_db.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_not_found(self, pending_service, mock_db):
        """Verify unknown pending subjects are reported."""
        mock_db.get.return_value = None

        with pytest.raises(PendingSubjectNotFoundError):
            await pending_service.resolve(99, PendingSubjectStatus.APROBADA)
