# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fixtures for period closure unit tests."""

from decimal import Decimal

import pytest

from src.domains.period_closure.outcome_calculator import InscriptionInput
from src.domains.period_closure.snapshot import PeriodInfo, PeriodSnapshot, TermInfo
from src.domains.period_closure.transition_rules import TransitionRule


@pytest.fixture
def ready_snapshot(make_subject) -> PeriodSnapshot:
    """A snapshot that passes every closure check.

    Grade 1 ("1er Año") promotes to grade 2 ("2do Año") with up to two
    pending subjects; grade 2 graduates. Three students are enrolled in
    grade 1, section 7, with final scores 12/8/15, 5/6/4 and 18/20/16.
    """

    def inscription(inscription_id: int, scores: list[str]) -> InscriptionInput:
        return InscriptionInput(
            inscription_id=inscription_id,
            person_id=inscription_id + 100,
            grade_id=1,
            section_id=7,
            subjects=tuple(
                make_subject(
                    inscription_id * 10 + index, [(score, "100", 3)], subject_id=index + 1
                )
                for index, score in enumerate(scores)
            ),
        )

    return PeriodSnapshot(
        period=PeriodInfo(id=1, name="2024-2025", start_year=2024, end_year=2025, is_active=True),
        terms=(
            TermInfo(id=1, name="Lapso 1", order=1, is_blocked=True),
            TermInfo(id=2, name="Lapso 2", order=2, is_blocked=True),
            TermInfo(id=3, name="Lapso 3", order=3, is_blocked=True),
        ),
        structure_grade_ids=frozenset({1, 2}),
        rules={
            1: TransitionRule(
                id=1,
                grade_from_id=1,
                grade_to_id=2,
                min_average=Decimal("10"),
                max_pending_subjects=2,
            ),
            2: TransitionRule(
                id=2,
                grade_from_id=2,
                grade_to_id=None,
                min_average=Decimal("10"),
                max_pending_subjects=0,
                auto_graduate=True,
            ),
        },
        inscriptions=(
            inscription(1, ["12", "8", "15"]),
            inscription(2, ["5", "6", "4"]),
            inscription(3, ["18", "20", "16"]),
        ),
        passing_threshold=Decimal("10"),
        checklist_total=3,
        checklist_done=3,
        next_period=PeriodInfo(
            id=2, name="2025-2026", start_year=2025, end_year=2026, is_active=False
        ),
        next_structure={1: frozenset({7}), 2: frozenset({7, 8})},
        grade_names={1: "1er Año", 2: "2do Año"},
    )
