"""Files API router - /api/v1/files endpoints."""

from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from fastapi.responses import Response
from pydantic import BaseModel

from file_uploader.core.files.exceptions import InvalidInputError
from file_uploader.core.files.records import FileRecord
from file_uploader.core.files.service import FileStore

router = APIRouter(prefix="/api/v1/files", tags=["files"])


# -----------------------------------------------------------------------------
# Request/Response Models
# -----------------------------------------------------------------------------


class FileObject(BaseModel):
    """Response object for file operations."""

    id: str
    object: str = "file"
    name: str
    type: str
    size: int
    url: str


class ListFilesResponse(BaseModel):
    """Response for GET /api/v1/files."""

    object: str = "list"
    data: list[FileObject]


class DeleteFileResponse(BaseModel):
    """Response for DELETE /api/v1/files/{id}."""

    id: str
    object: str = "file.deleted"
    deleted: bool


# -----------------------------------------------------------------------------
# Dependency Injection
# -----------------------------------------------------------------------------


def get_file_store(request: Request) -> FileStore:
    """Get the FileStore built during application startup."""
    return request.app.state.file_store


FileStoreDep = Annotated[FileStore, Depends(get_file_store)]


def to_file_object(request: Request, record: FileRecord) -> FileObject:
    return FileObject(
        id=record.id,
        name=record.name,
        type=record.type,
        size=record.size,
        url=str(request.url_for("download_file", file_id=record.id)),
    )


async def read_upload(file: UploadFile, store: FileStore) -> bytes:
    """Read the whole uploaded payload into memory.

    The size multipart parsing already recorded is checked first, so an
    oversized upload is rejected without being read.
    """
    try:
        if file.size is not None:
            store.check_upload_size(file.filename, file.size)
        return await file.read()
    except OSError as e:
        raise InvalidInputError(
            f"could not read uploaded file {file.filename}", filename=file.filename
        ) from e
    finally:
        await file.close()


# -----------------------------------------------------------------------------
# Endpoints
# -----------------------------------------------------------------------------


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_file(
    request: Request,
    store: FileStoreDep,
    file: UploadFile = File(...),
) -> FileObject:
    """Upload a file."""
    content = await read_upload(file, store)
    record = await store.store(file.filename or None, file.content_type, content)
    return to_file_object(request, record)


@router.get("")
async def list_files(request: Request, store: FileStoreDep) -> ListFilesResponse:
    """List stored files."""
    records = await store.get_all_files()
    return ListFilesResponse(data=[to_file_object(request, r) for r in records])


@router.get("/{file_id}")
async def get_file(file_id: str, request: Request, store: FileStoreDep) -> FileObject:
    """Retrieve file metadata."""
    record = await store.get_file(file_id)
    return to_file_object(request, record)


@router.get("/{file_id}/content", name="download_file")
async def download_file(file_id: str, store: FileStoreDep) -> Response:
    """Download file content."""
    record = await store.get_file(file_id)
    return Response(
        content=record.data,
        media_type=record.type or "application/octet-stream",
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(record.name)}"
        },
    )


@router.put("/{file_id}")
async def update_file(
    file_id: str,
    request: Request,
    store: FileStoreDep,
    file: UploadFile = File(...),
) -> FileObject:
    """Replace a stored file's name, type and content."""
    content = await read_upload(file, store)
    record = await store.update_file(
        file_id, file.filename or None, file.content_type, content
    )
    return to_file_object(request, record)


@router.delete("/{file_id}")
async def delete_file(file_id: str, store: FileStoreDep) -> DeleteFileResponse:
    """Delete a file."""
    await store.delete_file(file_id)
    return DeleteFileResponse(id=file_id, deleted=True)
