"""Storage layer for File Uploader."""

from file_uploader.storage.database import (
    DatabaseManager,
    create_database_manager,
    init_database,
)
from file_uploader.storage.models import Base, FileModel

__all__ = [
    "Base",
    "DatabaseManager",
    "FileModel",
    "create_database_manager",
    "init_database",
]
