"""In-process blob store.

Used by tests and local simulations. All operations take one
lock, so threads can stand in for competing build agents. Every content
mutation is appended to ``mutations`` for inspection.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from .base import (
    BlobNotFoundError,
    BlobStoreError,
    LeaseConflictError,
    LeaseMismatchError,
    normalize_path,
)

__all__ = ["MemoryBlobStore"]


@dataclass(slots=True)
class _Lease:
    lease_id: str
    duration: float
    expires_at: float


class MemoryBlobStore:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._blobs: dict[str, bytes] = {}
        self._leases: dict[str, _Lease] = {}
        self.mutations: list[tuple[str, str]] = []

    def _active_lease(self, path: str) -> _Lease | None:
        lease = self._leases.get(path)
        if lease is None or lease.expires_at <= self._clock():
            return None
        return lease

    def _put(self, op: str, path: str, data: bytes) -> None:
        self._blobs[path] = data
        self.mutations.append((op, path))

    def list_blobs(self, prefix: str) -> list[str]:
        with self._lock:
            return sorted(p for p in self._blobs if p.startswith(prefix))

    def exists(self, path: str) -> bool:
        with self._lock:
            return normalize_path(path) in self._blobs

    def create_if_not_exists(self, path: str) -> bool:
        path = normalize_path(path)
        with self._lock:
            if path in self._blobs:
                return False
            self._put("create", path, b"")
            return True

    def acquire_lease(self, path: str, duration: float) -> str:
        path = normalize_path(path)
        with self._lock:
            if path not in self._blobs:
                raise BlobNotFoundError(path)
            if self._active_lease(path) is not None:
                raise LeaseConflictError(path)
            lease_id = uuid4().hex
            self._leases[path] = _Lease(lease_id, duration, self._clock() + duration)
            return lease_id

    def renew_lease(self, path: str, lease_id: str) -> None:
        path = normalize_path(path)
        with self._lock:
            lease = self._leases.get(path)
            if lease is None or lease.lease_id != lease_id:
                raise LeaseMismatchError(path, lease_id)
            lease.expires_at = self._clock() + lease.duration

    def release_lease(self, path: str, lease_id: str) -> None:
        path = normalize_path(path)
        with self._lock:
            lease = self._leases.get(path)
            if lease is None or lease.lease_id != lease_id:
                raise LeaseMismatchError(path, lease_id)
            del self._leases[path]

    def is_leased(self, path: str) -> bool:
        with self._lock:
            return self._active_lease(normalize_path(path)) is not None

    def copy_blob(self, src: str, dst: str) -> None:
        src = normalize_path(src)
        dst = normalize_path(dst)
        with self._lock:
            if src not in self._blobs:
                raise BlobNotFoundError(src)
            self._put("copy", dst, self._blobs[src])

    def delete_blob(self, path: str) -> None:
        path = normalize_path(path)
        with self._lock:
            if path not in self._blobs:
                raise BlobNotFoundError(path)
            if self._active_lease(path) is not None:
                raise LeaseConflictError(path)
            del self._blobs[path]
            self.mutations.append(("delete", path))

    def read_bytes(self, path: str) -> bytes:
        path = normalize_path(path)
        with self._lock:
            if path not in self._blobs:
                raise BlobNotFoundError(path)
            return self._blobs[path]

    def read_text(self, path: str) -> str:
        return self.read_bytes(path).decode("utf-8")

    def write_bytes(self, path: str, data: bytes) -> None:
        path = normalize_path(path)
        with self._lock:
            self._put("write", path, data)

    def write_text(self, path: str, content: str) -> None:
        self.write_bytes(path, content.encode("utf-8"))

    def write_file(self, path: str, local_file: Path) -> None:
        try:
            data = local_file.read_bytes()
        except OSError as e:
            raise BlobStoreError(f"cannot read {local_file}: {e}") from e
        self.write_bytes(path, data)
