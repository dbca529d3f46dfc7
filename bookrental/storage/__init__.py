"""Durable storage for the shared application document."""

from .file_store import JsonFileStore, StorageError

__all__ = ["JsonFileStore", "StorageError"]
