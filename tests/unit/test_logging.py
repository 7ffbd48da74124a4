# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for structured logging setup."""

import json
import logging

import structlog

from src.core.config.settings import Settings
from src.utils.logging import (
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
    unbind_context,
)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_production_renders_json(self, capsys) -> None:
        """Test that non-development environments log JSON with bound context."""
        settings = Settings(environment="test", log_level="INFO")
        setup_logging(settings)
        clear_context()

        bind_context(closure_id=12, school_period_id=3)
        try:
            get_logger("tests.logging").info("closure_started", initiated_by=5)
        finally:
            clear_context()

        line = capsys.readouterr().out.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "closure_started"
        assert event["closure_id"] == 12
        assert event["school_period_id"] == 3
        assert event["initiated_by"] == 5
        assert event["level"] == "info"

    def test_quiets_driver_loggers(self) -> None:
        """Test that database driver loggers are raised to WARNING."""
        setup_logging(Settings(environment="test", log_level="DEBUG"))

        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        assert logging.getLogger("aiosqlite").level == logging.WARNING
        assert logging.getLogger("src").level == logging.DEBUG

    def test_unbind_context_keeps_other_keys(self) -> None:
        """Test that unbinding removes only the named keys."""
        clear_context()
        bind_context(request_id="r1", closure_id=12, school_period_id=3)

        unbind_context("closure_id", "school_period_id", "missing")

        assert structlog.contextvars.get_contextvars() == {"request_id": "r1"}

    def teardown_method(self) -> None:
        """Restore structlog defaults for other tests."""
        structlog.reset_defaults()
        clear_context()
