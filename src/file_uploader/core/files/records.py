"""File record value type and filename cleaning."""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from file_uploader.core.files.exceptions import InvalidInputError
from file_uploader.storage.models import FileModel

_PATH_SEPARATORS = re.compile(r"[\\/]+")


def clean_filename(filename: str | None) -> str:
    """Reduce an uploaded filename to its final path segment.

    Both POSIX and Windows separators count, and trailing separators are
    ignored, so ``"a/b/c.txt"`` and ``"..\\docs\\c.txt"`` both clean to
    ``"c.txt"``. Cleaning a clean name returns it unchanged.

    Raises:
        InvalidInputError: if the filename is missing or names no file
            (empty, ``.`` or ``..`` after cleaning).
    """
    if filename is None:
        raise InvalidInputError("filename is required")

    segments = [s for s in _PATH_SEPARATORS.split(filename) if s]
    name = segments[-1] if segments else ""
    if name in ("", ".", ".."):
        raise InvalidInputError(f"invalid filename {filename!r}", filename=filename)
    return name


class FileRecord(BaseModel):
    """A stored file: metadata plus payload.

    Detached from any database session so it can be cached and shared freely.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: str
    data: bytes
    created_at: datetime | None = None

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_model(cls, model: FileModel) -> "FileRecord":
        return cls(
            id=model.id,
            name=model.name,
            type=model.type,
            data=model.data,
            created_at=model.created_at,
        )
