"""File store service: create, read, update and delete uploaded files."""

import time
from collections.abc import Iterator

from sqlalchemy.exc import SQLAlchemyError

from file_uploader.core.files.cache import NullRecordCache, RecordCache
from file_uploader.core.files.exceptions import (
    DeletionFailureError,
    InvalidInputError,
    RecordNotFoundError,
    StorageFailureError,
)
from file_uploader.core.files.records import FileRecord, clean_filename
from file_uploader.core.files.repository import FileRecordRepository
from file_uploader.observability.logging import get_logger
from file_uploader.observability.metrics import metrics_registry
from file_uploader.storage.database import DatabaseManager
from file_uploader.storage.models import FileModel

logger = get_logger(__name__)


class FileStore:
    """Service for storing uploaded files in the database.

    Handles:
    - Filename cleaning on every create and update
    - Persistence through one transaction per operation
    - Read-through caching of single records by ID

    The cache is injected; update evicts after the write commits and delete
    evicts before removing the row, so a later ``get_file`` never serves the
    replaced or deleted record.
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        cache: RecordCache | None = None,
        *,
        max_upload_size: int | None = None,
    ):
        self._db_manager = db_manager
        self._cache = cache if cache is not None else NullRecordCache()
        self._max_upload_size = max_upload_size

    @property
    def cache(self) -> RecordCache:
        return self._cache

    def check_upload_size(self, filename: str | None, size: int) -> None:
        """Reject a payload of ``size`` bytes if it is over the upload limit."""
        if self._max_upload_size is not None and size > self._max_upload_size:
            raise InvalidInputError(
                f"file {filename} is {size} bytes, "
                f"exceeds maximum of {self._max_upload_size}",
                filename=filename,
            )

    def _check_payload(self, filename: str, data: bytes) -> None:
        if data is None:
            raise InvalidInputError("file content is required", filename=filename)
        self.check_upload_size(filename, len(data))

    async def store(
        self,
        name: str | None,
        content_type: str | None,
        data: bytes,
    ) -> FileRecord:
        """Store a new file.

        Args:
            name: Original filename; may carry directory components
            content_type: Content-type label, stored as given
            data: File content

        Returns:
            The persisted record with its assigned ID

        Raises:
            InvalidInputError: missing filename or oversized payload
            StorageFailureError: the database rejected the insert
        """
        start = time.perf_counter()
        filename = clean_filename(name)
        self._check_payload(filename, data)

        try:
            async with self._db_manager.session() as session:
                repository = FileRecordRepository(session)
                file_model = await repository.save(
                    FileModel(name=filename, type=content_type or "", data=data)
                )
                record = FileRecord.from_model(file_model)
        except SQLAlchemyError as e:
            metrics_registry.record_file_operation(
                "store", "failure", time.perf_counter() - start
            )
            logger.error("Failed to store file", filename=filename, error=str(e))
            raise StorageFailureError.for_create(filename) from e

        metrics_registry.record_file_operation(
            "store", "success", time.perf_counter() - start
        )
        metrics_registry.record_upload_size(record.size)
        logger.info("File stored", file_id=record.id, filename=filename, size=record.size)
        return record

    async def get_file(self, file_id: str) -> FileRecord:
        """Get a file by ID, consulting the cache first.

        Raises:
            RecordNotFoundError: no record exists for ``file_id``
        """
        cached = await self._cache.get(file_id)
        metrics_registry.record_cache_lookup(hit=cached is not None)
        if cached is not None:
            return cached

        start = time.perf_counter()
        async with self._db_manager.session() as session:
            file_model = await FileRecordRepository(session).find_by_id(file_id)
            record = FileRecord.from_model(file_model) if file_model else None

        if record is None:
            metrics_registry.record_file_operation(
                "get", "not_found", time.perf_counter() - start
            )
            raise RecordNotFoundError(file_id)

        metrics_registry.record_file_operation(
            "get", "success", time.perf_counter() - start
        )
        await self._cache.put(file_id, record)
        return record

    async def get_all_files(self) -> Iterator[FileRecord]:
        """Return every stored file.

        The table is read once when this coroutine runs; the returned
        iterator walks that snapshot lazily and can be consumed only once.
        """
        start = time.perf_counter()
        async with self._db_manager.session() as session:
            file_models = await FileRecordRepository(session).find_all()

        metrics_registry.record_file_operation(
            "list", "success", time.perf_counter() - start
        )
        return (FileRecord.from_model(m) for m in file_models)

    async def update_file(
        self,
        file_id: str,
        name: str | None,
        content_type: str | None,
        data: bytes,
    ) -> FileRecord:
        """Replace the name, type and content of an existing file.

        The id is looked up before the new name and payload are checked, so an
        unknown id reports RecordNotFoundError whatever the input.

        Raises:
            InvalidInputError: missing filename or oversized payload
            RecordNotFoundError: no record exists for ``file_id``
            StorageFailureError: the database rejected the update
        """
        start = time.perf_counter()
        try:
            async with self._db_manager.session() as session:
                repository = FileRecordRepository(session)
                file_model = await repository.find_by_id(file_id)
                if file_model is None:
                    raise RecordNotFoundError(file_id)

                filename = clean_filename(name)
                self._check_payload(filename, data)

                file_model.name = filename
                file_model.type = content_type or ""
                file_model.data = data
                await repository.save(file_model)
                record = FileRecord.from_model(file_model)
        except RecordNotFoundError:
            metrics_registry.record_file_operation(
                "update", "not_found", time.perf_counter() - start
            )
            raise
        except SQLAlchemyError as e:
            metrics_registry.record_file_operation(
                "update", "failure", time.perf_counter() - start
            )
            logger.error("Failed to update file", file_id=file_id, error=str(e))
            raise StorageFailureError.for_update(file_id) from e

        await self._cache.evict(file_id)

        metrics_registry.record_file_operation(
            "update", "success", time.perf_counter() - start
        )
        logger.info("File updated", file_id=file_id, filename=filename, size=record.size)
        return record

    async def delete_file(self, file_id: str) -> None:
        """Delete a file by ID.

        Raises:
            RecordNotFoundError: no record exists for ``file_id``
            DeletionFailureError: the database rejected the delete
        """
        start = time.perf_counter()
        try:
            async with self._db_manager.session() as session:
                repository = FileRecordRepository(session)
                file_model = await repository.find_by_id(file_id)
                if file_model is None:
                    raise RecordNotFoundError(file_id)

                await self._cache.evict(file_id)
                await repository.delete(file_model)
        except RecordNotFoundError:
            metrics_registry.record_file_operation(
                "delete", "not_found", time.perf_counter() - start
            )
            raise
        except SQLAlchemyError as e:
            metrics_registry.record_file_operation(
                "delete", "failure", time.perf_counter() - start
            )
            logger.error("Failed to delete file", file_id=file_id, error=str(e))
            raise DeletionFailureError(file_id) from e

        metrics_registry.record_file_operation(
            "delete", "success", time.perf_counter() - start
        )
        logger.info("File deleted", file_id=file_id)
