# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the database connection lifecycle.

Runs against ``TEST_DATABASE_URL`` when set, and against an in-memory
SQLite database otherwise.
"""

import pytest
import pytest_asyncio
from sqlalchemy import text

from src.core.config.settings import Settings
from src.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    get_engine,
    get_session,
    init_database,
)

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def database(db_url):
    """Initialize the module-level engine and dispose it afterwards."""
    await init_database(Settings(environment="test"), url=db_url)
    try:
        yield
    finally:
        await close_database()


class TestConnectionLifecycle:
    """Test engine initialization, health check and shutdown."""

    @pytest.mark.asyncio
    async def test_uninitialized_database(self):
        """Verify helpers report a missing engine before init."""
        await close_database()

        with pytest.raises(DatabaseError, match="not initialized"):
            get_engine()
        assert await check_database_connection() is False

    @pytest.mark.asyncio
    async def test_connection_check_after_init(self, database):
        """Verify the engine is reachable once initialized."""
        engine = get_engine()

        assert engine is not None
        assert await check_database_connection() is True

    @pytest.mark.asyncio
    async def test_session_executes_queries(self, database):
        """Verify sessions from the module sessionmaker run queries."""
        async with get_session() as session:
            result = await session.execute(text("SELECT 1"))
            assert result.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_close_database_resets_state(self, database):
        """Verify shutdown disposes the engine."""
        await close_database()

        assert await check_database_connection() is False
        with pytest.raises(DatabaseError):
            get_engine()
