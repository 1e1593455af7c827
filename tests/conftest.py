"""Shared fixtures for File Uploader tests."""

import os
import tempfile
from unittest.mock import AsyncMock, MagicMock

import pytest

from file_uploader.config import SqliteStorageConfig
from file_uploader.core.files.cache import MemoryRecordCache
from file_uploader.core.files.service import FileStore
from file_uploader.storage.database import DatabaseManager, create_database_manager


@pytest.fixture
def temp_db_path():
    """Create a temporary database file for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield db_path
    # Cleanup
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
async def db_manager(temp_db_path):
    """A real SQLite-backed database manager with tables created."""
    manager = create_database_manager(SqliteStorageConfig(db_path=temp_db_path))
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
def memory_cache():
    return MemoryRecordCache()


@pytest.fixture
def file_store(db_manager, memory_cache):
    """FileStore over a real SQLite database and an in-memory cache."""
    return FileStore(db_manager=db_manager, cache=memory_cache)


@pytest.fixture
async def mock_database_manager():
    """Create a mock database manager."""
    db_manager = MagicMock(spec=DatabaseManager)

    # Mock session context manager
    mock_session = AsyncMock()
    mock_session.add = MagicMock()
    mock_session.flush = AsyncMock()
    mock_session.refresh = AsyncMock()
    mock_session.execute = AsyncMock()
    mock_session.delete = AsyncMock()

    # Create an async context manager
    mock_session_context_manager = MagicMock()
    mock_session_context_manager.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session_context_manager.__aexit__ = AsyncMock(return_value=None)

    db_manager.session.return_value = mock_session_context_manager

    return db_manager, mock_session
