"""Core service logic for File Uploader."""
