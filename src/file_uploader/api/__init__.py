"""API routers for File Uploader."""

from file_uploader.api.files import router as files_router

__all__ = [
    "files_router",
]
