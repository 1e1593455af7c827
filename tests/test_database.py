"""Tests for database setup."""

import pytest
from sqlalchemy import inspect

from file_uploader.config import SqliteStorageConfig, StackConfig
from file_uploader.storage.database import init_database


@pytest.mark.asyncio
async def test_init_database_creates_files_table(temp_db_path):
    config = StackConfig(
        storage_backends={"default": SqliteStorageConfig(db_path=temp_db_path)}
    )

    db_manager = await init_database(config)
    try:
        async with db_manager.engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        assert "files" in tables
        assert await db_manager.health_check()
    finally:
        await db_manager.close()


@pytest.mark.asyncio
async def test_init_database_unknown_backend():
    with pytest.raises(ValueError, match="Storage backend 'archive' not found"):
        await init_database(StackConfig(), backend_name="archive")
