"""Async engine and transaction scope for the files table."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from file_uploader.config import (
    PostgresStorageConfig,
    SqliteStorageConfig,
    StackConfig,
    StorageBackendConfig,
)
from file_uploader.observability.logging import get_logger
from file_uploader.storage.models import Base

logger = get_logger(__name__)


class DatabaseManager:
    """Owns the async engine and hands out one-transaction sessions.

    Works the same over SQLite and PostgreSQL; the engine decides which.
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        # Records are copied out of the session, so nothing is expired on commit
        self._session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def create_tables(self) -> None:
        """Create the files table if it does not exist yet."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Open a session whose block is a single transaction.

        Commits when the block exits normally and rolls back when it raises.
        """
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """Check that the database answers a trivial query."""
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error("Database health check failed", error=str(e))
            return False

    async def close(self) -> None:
        await self._engine.dispose()


def _sqlite_engine(config: SqliteStorageConfig) -> AsyncEngine:
    return create_async_engine(
        f"sqlite+aiosqlite:///{config.db_path}",
        echo=False,
        connect_args={"check_same_thread": False},
    )


def _postgres_engine(config: PostgresStorageConfig) -> AsyncEngine:
    return create_async_engine(
        config.connection_url,
        echo=False,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_pre_ping=True,
    )


def create_engine_from_config(config: StorageBackendConfig) -> AsyncEngine:
    """Build the engine for a storage backend, dispatching on its ``type``."""
    match config:
        case SqliteStorageConfig():
            return _sqlite_engine(config)
        case PostgresStorageConfig():
            return _postgres_engine(config)
        case _:
            raise ValueError(f"Unknown storage backend type: {type(config)}")


def create_database_manager(config: StorageBackendConfig) -> DatabaseManager:
    """Create a DatabaseManager from storage backend config."""
    return DatabaseManager(create_engine_from_config(config))


async def init_database(
    config: StackConfig, backend_name: str = "default"
) -> DatabaseManager:
    """Build the manager for a configured storage backend and create its tables.

    The caller owns the returned manager and closes it on shutdown.
    """
    backend_config = config.storage_backends.get(backend_name)
    if backend_config is None:
        raise ValueError(
            f"Storage backend '{backend_name}' not found in config. "
            f"Available: {list(config.storage_backends.keys())}"
        )

    db_manager = create_database_manager(backend_config)
    await db_manager.create_tables()
    logger.info("Database initialized", backend=backend_name, type=backend_config.type)
    return db_manager
