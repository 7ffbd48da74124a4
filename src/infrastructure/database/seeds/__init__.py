# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database seed package.

This package contains seed data for initializing databases:
- Transition rules: promotion thresholds per grade, from a YAML file
"""

from src.infrastructure.database.seeds.transition_rules import seed_transition_rules

__all__ = ["seed_transition_rules"]
