"""Academic records backend.

Period closure engine for an academic records platform: final grade
consolidation, promotion decisions and next-period enrollment.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
