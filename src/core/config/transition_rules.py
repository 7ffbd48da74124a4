# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Transition rule configuration file loader.

Transition rules can be maintained as a YAML file and seeded into the
``school_period_transition_rules`` table. Grades are referenced by name
so the file stays portable between databases.

Example file:

    rules:
      - grade_from: "1er Año"
        grade_to: "2do Año"
        min_average: 10
        max_pending_subjects: 2
      - grade_from: "5to Año"
        auto_graduate: true

Example:
    >>> from pathlib import Path
    >>> from src.core.config.transition_rules import load_transition_rules
    >>> rules = load_transition_rules(Path("config/transition_rules.yaml"))
"""

from decimal import Decimal
from pathlib import Path
from typing import Self

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator


class TransitionRulesFileError(Exception):
    """Raised when the transition rules file cannot be loaded or validated."""

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize TransitionRulesFileError.

        Args:
            path: Path to the file that failed to load.
            reason: Description of why the file failed to load.
        """
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load transition rules '{path}': {reason}")


class TransitionRuleConfig(BaseModel):
    """One promotion rule as declared in the configuration file."""

    grade_from: str = Field(min_length=1)
    grade_to: str | None = None
    min_average: Decimal | None = Field(default=None, ge=0, le=20)
    max_pending_subjects: int = Field(default=0, ge=0)
    auto_graduate: bool = False

    @model_validator(mode="after")
    def check_terminal_grade(self) -> Self:
        """Graduating grades have no promotion target."""
        if self.auto_graduate and self.grade_to is not None:
            raise ValueError(
                f"Rule for '{self.grade_from}' cannot auto-graduate and promote to '{self.grade_to}'"
            )
        return self


class TransitionRulesFile(BaseModel):
    """Root document of the transition rules file."""

    rules: list[TransitionRuleConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_grade_from(self) -> Self:
        """Only one rule may exist per origin grade."""
        seen: set[str] = set()
        for rule in self.rules:
            if rule.grade_from in seen:
                raise ValueError(f"Duplicate rule for grade '{rule.grade_from}'")
            seen.add(rule.grade_from)
        return self


def load_transition_rules(path: Path) -> list[TransitionRuleConfig]:
    """Load and validate a transition rules YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Validated rules in file order. Empty list for an empty file.

    Raises:
        TransitionRulesFileError: If the file is missing, unreadable,
            not valid YAML, or fails validation.
    """
    if not path.is_file():
        raise TransitionRulesFileError(path, "File does not exist")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise TransitionRulesFileError(path, f"Cannot read file: {e}") from e

    try:
        parsed = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise TransitionRulesFileError(path, f"Invalid YAML syntax: {e}") from e

    if parsed is None:
        return []

    if not isinstance(parsed, dict):
        raise TransitionRulesFileError(
            path, f"YAML root must be a mapping, got {type(parsed).__name__}"
        )

    try:
        document = TransitionRulesFile.model_validate(parsed)
    except ValidationError as e:
        raise TransitionRulesFileError(path, str(e)) from e

    return document.rules
