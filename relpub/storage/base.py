"""Blob store contract.

Blob paths are ``/``-separated keys without a leading slash, for example
``master/Binaries/1.0.0/Ubuntu_x64_badge.svg``. Adapters raise the exceptions
defined here; callers that need a Result convert at their own boundary.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

__all__ = [
    "BlobStore",
    "BlobStoreError",
    "BlobNotFoundError",
    "LeaseConflictError",
    "LeaseMismatchError",
    "file_name",
    "normalize_path",
]


class BlobStoreError(Exception):
    """Base class for blob store failures."""


class BlobNotFoundError(BlobStoreError):
    def __init__(self, path: str) -> None:
        super().__init__(f"blob not found: {path}")
        self.path = path


class LeaseConflictError(BlobStoreError):
    """The blob is leased by someone else."""

    def __init__(self, path: str) -> None:
        super().__init__(f"blob is already leased: {path}")
        self.path = path


class LeaseMismatchError(BlobStoreError):
    """The given lease id is not the active lease on the blob."""

    def __init__(self, path: str, lease_id: str) -> None:
        super().__init__(f"lease {lease_id} is not the active lease on {path}")
        self.path = path
        self.lease_id = lease_id


def normalize_path(path: str) -> str:
    """Validate a blob path and return it without surrounding slashes.

    Raises:
        BlobStoreError: If the path is empty or contains empty, ``.`` or ``..``
            segments.
    """
    clean = path.strip("/")
    parts = clean.split("/")
    if not clean or any(p in ("", ".", "..") for p in parts):
        raise BlobStoreError(f"invalid blob path: {path!r}")
    return clean


def file_name(path: str) -> str:
    """Last segment of a blob path."""
    return path.rstrip("/").rsplit("/", 1)[-1]


@runtime_checkable
class BlobStore(Protocol):
    """Operations the publishing protocol needs from a blob store."""

    def list_blobs(self, prefix: str) -> list[str]:
        """Return the paths of all blobs starting with prefix, sorted."""
        ...

    def exists(self, path: str) -> bool: ...

    def create_if_not_exists(self, path: str) -> bool:
        """Create an empty blob unless one exists. Returns True if created."""
        ...

    def acquire_lease(self, path: str, duration: float) -> str:
        """Try to take an exclusive lease on an existing blob.

        Does not wait: raises LeaseConflictError when another lease is active.
        Returns the lease id.
        """
        ...

    def renew_lease(self, path: str, lease_id: str) -> None: ...

    def release_lease(self, path: str, lease_id: str) -> None: ...

    def copy_blob(self, src: str, dst: str) -> None: ...

    def delete_blob(self, path: str) -> None: ...

    def read_bytes(self, path: str) -> bytes: ...

    def read_text(self, path: str) -> str: ...

    def write_text(self, path: str, content: str) -> None: ...

    def write_file(self, path: str, local_file: Path) -> None: ...
