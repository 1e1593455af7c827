"""Persistent storage for file records."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from file_uploader.storage.models import FileModel


def generate_file_id() -> str:
    """Generate a unique file ID."""
    return str(uuid.uuid4())


class FileRecordRepository:
    """Database operations for the ``files`` table.

    Bound to one session; the caller owns the transaction. SQLAlchemy errors
    propagate unchanged.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def save(self, file_model: FileModel) -> FileModel:
        """Insert or update a file record.

        A record without an id is new: it gets a fresh id and its server-side
        defaults are loaded back after the insert.
        """
        is_new = file_model.id is None
        if is_new:
            file_model.id = generate_file_id()
            self._session.add(file_model)

        await self._session.flush()

        if is_new:
            await self._session.refresh(file_model)
        return file_model

    async def find_by_id(self, file_id: str) -> FileModel | None:
        result = await self._session.execute(
            select(FileModel).where(FileModel.id == file_id)
        )
        return result.scalar_one_or_none()

    async def find_all(self) -> list[FileModel]:
        """Return every record, oldest first."""
        result = await self._session.execute(
            select(FileModel).order_by(FileModel.created_at.asc(), FileModel.id.asc())
        )
        return list(result.scalars().all())

    async def delete(self, file_model: FileModel) -> None:
        await self._session.delete(file_model)
        await self._session.flush()
