"""
Global pytest configuration and fixtures for chain database tests

Provides:
- Empty file-backed SQLite database
- Legacy (version 0) database
- Database with the current ORM tables
"""

import logging

import pytest

from chaindb.database import ChainDatabase
from chaindb.models import Base
from tests.fixtures.legacy_schema import create_legacy_schema


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom settings"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
async def database(tmp_path):
    """Empty SQLite database backed by a temporary file.

    A file is used rather than ':memory:' so every pooled connection sees
    the same data.

    Yields:
        ChainDatabase: Database with no tables
    """
    db = ChainDatabase(str(tmp_path / 'chain.db'))

    yield db

    try:
        await db.close()
    except Exception as e:
        logging.warning('Error closing test database: %s', e)


@pytest.fixture
async def legacy_database(database):
    """Database at schema version 0 (no schema metadata record)."""
    await create_legacy_schema(database)
    return database


@pytest.fixture
async def current_database(database):
    """Database with the ORM tables created directly."""
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return database
