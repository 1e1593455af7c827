"""File Uploader: store, fetch, list, update and delete files in a database."""

__version__ = "0.1.0"
