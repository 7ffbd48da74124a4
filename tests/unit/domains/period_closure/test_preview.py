# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the closure preview."""

from dataclasses import replace
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from src.domains.period_closure.errors import ClosureComputationError
from src.domains.period_closure.outcome_calculator import calculate_outcomes
from src.domains.period_closure.preview import build_preview, calculate_preview
from src.models.common import OutcomeStatus, SubjectStatus


class TestBuildPreview:
    """Tests for build_preview."""

    def test_sorted_by_failed_subjects(self, ready_snapshot, as_of):
        """Verify students with most failed subjects come first."""
        preview = build_preview(ready_snapshot, as_of)

        assert [item.inscription_id for item in preview] == [2, 1, 3]
        assert [item.failed_subjects for item in preview] == [3, 1, 0]

    def test_outcome_details(self, ready_snapshot, as_of):
        """Verify grade names, averages and subject breakdown."""
        preview = {item.inscription_id: item for item in build_preview(ready_snapshot, as_of)}

        pending = preview[1]
        assert pending.status is OutcomeStatus.MATERIAS_PENDIENTES
        assert pending.final_average == Decimal("11.67")
        assert pending.grade.name == "1er Año"
        assert pending.promotion_grade.name == "2do Año"
        assert [subject.status for subject in pending.subjects] == [
            SubjectStatus.APROBADA,
            SubjectStatus.REPROBADA,
            SubjectStatus.APROBADA,
        ]

        repeater = preview[2]
        assert repeater.status is OutcomeStatus.REPROBADO
        assert repeater.promotion_grade.name == "1er Año"

        approved = preview[3]
        assert approved.status is OutcomeStatus.APROBADO
        assert approved.final_average == Decimal("18.00")
        assert approved.graduated is False

    def test_matches_outcome_calculator(self, ready_snapshot, as_of):
        """Verify the preview shows exactly what the calculator decides."""
        outcomes = {
            outcome.inscription_id: outcome
            for outcome in calculate_outcomes(
                ready_snapshot.inscriptions,
                ready_snapshot.rules,
                ready_snapshot.aggregation_context,
                as_of,
            )
        }

        for item in build_preview(ready_snapshot, as_of):
            outcome = outcomes[item.inscription_id]
            assert item.status is outcome.status
            assert item.final_average == outcome.final_average
            assert item.failed_subjects == outcome.failed_subjects

    def test_json_serialization(self, ready_snapshot, as_of):
        """Verify scores are emitted as numbers in JSON mode."""
        item = build_preview(ready_snapshot, as_of)[1]

        data = item.model_dump(mode="json")

        assert data["final_average"] == 11.67
        assert data["status"] == "materias_pendientes"
        assert data["subjects"][0]["final_score"] == 12.0

    def test_missing_rule_propagates(self, ready_snapshot, as_of):
        """Verify computation errors are not swallowed."""
        snapshot = replace(ready_snapshot, rules={})

        with pytest.raises(ClosureComputationError):
            build_preview(snapshot, as_of)


class TestCalculatePreview:
    """Tests for calculate_preview."""

    @pytest.mark.asyncio
    async def test_loads_snapshot_without_writing(
        self, mock_db, closure_settings, ready_snapshot, as_of
    ):
        """Verify the preview only reads."""
        with patch(
            "src.domains.period_closure.preview.load_period_snapshot",
            AsyncMock(return_value=ready_snapshot),
        ) as load:
            preview = await calculate_preview(mock_db, 1, closure_settings, as_of)

        load.assert_awaited_once_with(mock_db, 1, closure_settings)
        assert len(preview) == 3
        mock_db.add.assert_not_called()
        mock_db.commit.assert_not_called()
