# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the transition rules file loader."""

from decimal import Decimal
from pathlib import Path

import pytest

from src.core.config.transition_rules import TransitionRulesFileError, load_transition_rules


class TestLoadTransitionRules:
    """Tests for load_transition_rules."""

    def test_load_valid_file(self, tmp_path: Path) -> None:
        """Test loading rules in file order."""
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text(
            "rules:\n"
            "  - grade_from: 1er Año\n"
            "    grade_to: 2do Año\n"
            "    min_average: 10.5\n"
            "    max_pending_subjects: 2\n"
            "  - grade_from: 5to Año\n"
            "    auto_graduate: true\n",
            encoding="utf-8",
        )

        rules = load_transition_rules(rules_file)

        assert [rule.grade_from for rule in rules] == ["1er Año", "5to Año"]
        assert rules[0].grade_to == "2do Año"
        assert rules[0].min_average == Decimal("10.5")
        assert rules[0].max_pending_subjects == 2
        assert rules[1].grade_to is None
        assert rules[1].min_average is None
        assert rules[1].auto_graduate is True

    def test_empty_file_returns_no_rules(self, tmp_path: Path) -> None:
        """Test that an empty file yields an empty list."""
        rules_file = tmp_path / "empty.yaml"
        rules_file.write_text("# nothing yet\n")

        assert load_transition_rules(rules_file) == []

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file raises a load error."""
        with pytest.raises(TransitionRulesFileError, match="does not exist"):
            load_transition_rules(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test that malformed YAML raises a load error."""
        rules_file = tmp_path / "broken.yaml"
        rules_file.write_text("rules: [unclosed\n")

        with pytest.raises(TransitionRulesFileError, match="Invalid YAML syntax"):
            load_transition_rules(rules_file)

    def test_list_root(self, tmp_path: Path) -> None:
        """Test that the root must be a mapping."""
        rules_file = tmp_path / "list.yaml"
        rules_file.write_text("- grade_from: 1er Año\n")

        with pytest.raises(TransitionRulesFileError, match="YAML root must be a mapping"):
            load_transition_rules(rules_file)

    def test_duplicate_grade(self, tmp_path: Path) -> None:
        """Test that a grade may only have one rule."""
        rules_file = tmp_path / "dup.yaml"
        rules_file.write_text(
            "rules:\n"
            "  - grade_from: 1er Año\n"
            "    grade_to: 2do Año\n"
            "  - grade_from: 1er Año\n"
            "    grade_to: 3er Año\n",
            encoding="utf-8",
        )

        with pytest.raises(TransitionRulesFileError, match="Duplicate rule"):
            load_transition_rules(rules_file)

    def test_auto_graduate_with_target(self, tmp_path: Path) -> None:
        """Test that a graduating grade cannot also promote."""
        rules_file = tmp_path / "grad.yaml"
        rules_file.write_text(
            "rules:\n"
            "  - grade_from: 5to Año\n"
            "    grade_to: 6to Año\n"
            "    auto_graduate: true\n",
            encoding="utf-8",
        )

        with pytest.raises(TransitionRulesFileError, match="cannot auto-graduate"):
            load_transition_rules(rules_file)

    def test_negative_pending_subjects(self, tmp_path: Path) -> None:
        """Test that the pending subject ceiling cannot be negative."""
        rules_file = tmp_path / "neg.yaml"
        rules_file.write_text(
            "rules:\n"
            "  - grade_from: 1er Año\n"
            "    max_pending_subjects: -1\n",
            encoding="utf-8",
        )

        with pytest.raises(TransitionRulesFileError):
            load_transition_rules(rules_file)
