"""File store core logic."""

from file_uploader.core.files.cache import (
    MemoryRecordCache,
    NullRecordCache,
    RecordCache,
    RedisRecordCache,
    create_record_cache,
)
from file_uploader.core.files.exceptions import (
    DeletionFailureError,
    FileStoreError,
    InvalidInputError,
    RecordNotFoundError,
    StorageFailureError,
)
from file_uploader.core.files.records import FileRecord, clean_filename
from file_uploader.core.files.service import FileStore

__all__ = [
    "DeletionFailureError",
    "FileRecord",
    "FileStore",
    "FileStoreError",
    "InvalidInputError",
    "MemoryRecordCache",
    "NullRecordCache",
    "RecordCache",
    "RecordNotFoundError",
    "RedisRecordCache",
    "StorageFailureError",
    "clean_filename",
    "create_record_cache",
]
