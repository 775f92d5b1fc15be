"""Blob store contract and adapters."""

from .base import (
    BlobNotFoundError,
    BlobStore,
    BlobStoreError,
    LeaseConflictError,
    LeaseMismatchError,
    file_name,
    normalize_path,
)
from .local import LocalBlobStore
from .memory import MemoryBlobStore

__all__ = [
    "BlobNotFoundError",
    "BlobStore",
    "BlobStoreError",
    "LeaseConflictError",
    "LeaseMismatchError",
    "LocalBlobStore",
    "MemoryBlobStore",
    "file_name",
    "normalize_path",
]
