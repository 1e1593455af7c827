"""Errors raised by the file store."""


class FileStoreError(Exception):
    """Base class for file store failures."""


class InvalidInputError(FileStoreError):
    """Raised when an upload cannot be accepted as given."""

    def __init__(self, message: str, filename: str | None = None) -> None:
        self.filename = filename
        super().__init__(message)


class RecordNotFoundError(FileStoreError):
    """Raised when no record exists for an identifier."""

    def __init__(self, file_id: str) -> None:
        self.file_id = file_id
        super().__init__(f"file not found with id {file_id}")


class StorageFailureError(FileStoreError):
    """Raised when the backing store rejects a write.

    Exactly one of ``filename`` (failed create) or ``file_id`` (failed update)
    is set.
    """

    def __init__(
        self,
        message: str,
        *,
        filename: str | None = None,
        file_id: str | None = None,
    ) -> None:
        self.filename = filename
        self.file_id = file_id
        super().__init__(message)

    @classmethod
    def for_create(cls, filename: str) -> "StorageFailureError":
        return cls(f"could not store file {filename}", filename=filename)

    @classmethod
    def for_update(cls, file_id: str) -> "StorageFailureError":
        return cls(f"could not update file with id {file_id}", file_id=file_id)


class DeletionFailureError(FileStoreError):
    """Raised when the backing store rejects a delete."""

    def __init__(self, file_id: str) -> None:
        self.file_id = file_id
        super().__init__(f"could not delete file with id {file_id}")
