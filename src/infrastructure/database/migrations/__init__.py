# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database migrations package.

Alembic revisions live in ``versions/``:
- 001_academic_records: catalog and grade-entry tables read by the closure
- 002_period_closure: tables owned by the period closure engine
"""
