# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package.

This package provides centralized configuration management:
- Settings: Pydantic-based settings loaded from environment variables
- Transition rules: YAML-based promotion rule definitions

Example:
    >>> from src.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.closure.council_points_mode)
    'closing_term'
"""

from src.core.config.settings import (
    ClosureSettings,
    CouncilPointsMode,
    DatabaseSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from src.core.config.transition_rules import (
    TransitionRuleConfig,
    TransitionRulesFileError,
    load_transition_rules,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "ClosureSettings",
    "CouncilPointsMode",
    # Transition rules
    "TransitionRuleConfig",
    "TransitionRulesFileError",
    "load_transition_rules",
]
