"""Persistence for the single Simple Linkz data document."""

from linkz.storage.loader import StorageError, load_document, validate_document
from linkz.storage.store import DocumentStore, resolve_data_dir
from linkz.storage.writer import (
    DEFAULT_PREFERENCES,
    build_document,
    create_document,
    write_document,
)

__all__ = [
    "DEFAULT_PREFERENCES",
    "DocumentStore",
    "StorageError",
    "build_document",
    "create_document",
    "load_document",
    "resolve_data_dir",
    "validate_document",
    "write_document",
]
