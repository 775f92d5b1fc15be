"""Directory-backed blob store.

Blob ``a/b/c`` lives at ``<root>/a/b/c``. Leases are kept beside the data
under ``<root>/.leases`` so several processes on one host (or on a shared
volume) can coordinate through the same root.

Leases are numbered generations: ``<blob>.lease.<n>``. The highest generation
is the current lease. Taking a lease means creating generation ``n+1``
exclusively (hard link of a fully written temp file, which fails if the name
exists), and is only attempted once generation ``n`` is released or expired.
Generations below ``n-1`` are pruned, so a contender working from a stale
listing may recreate a pruned number; it re-lists after linking and backs off
unless its generation is the highest.
Exactly one contender ends up holding the highest generation.
"""

from __future__ import annotations

import json
import os
import tempfile
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from pathlib import Path
from uuid import uuid4

from relpub.platform.files import atomic_write_bytes

from .base import (
    BlobNotFoundError,
    BlobStoreError,
    LeaseConflictError,
    LeaseMismatchError,
    normalize_path,
)

__all__ = ["LocalBlobStore"]

_LEASE_DIR = ".leases"


@dataclass(frozen=True, slots=True)
class _LeaseRecord:
    lease_id: str
    duration: float
    expires_at: float
    released: bool = False

    def is_active(self, now: float) -> bool:
        return not self.released and self.expires_at > now


@contextmanager
def _wrap_os_errors(path: str) -> Iterator[None]:
    try:
        yield
    except FileNotFoundError as e:
        raise BlobNotFoundError(path) from e
    except OSError as e:
        raise BlobStoreError(f"{path}: {e}") from e


class LocalBlobStore:
    def __init__(self, root: Path, clock: Callable[[], float] = time.time) -> None:
        self.root = root
        self._clock = clock

    # -- paths -------------------------------------------------------------

    def _check(self, path: str) -> str:
        clean = normalize_path(path)
        if any(part.startswith(".") for part in clean.split("/")):
            raise BlobStoreError(f"invalid blob path for local store: {path!r}")
        return clean

    def _file(self, path: str) -> Path:
        return self.root.joinpath(*path.split("/"))

    def _lease_base(self, path: str) -> Path:
        return self.root.joinpath(_LEASE_DIR, *path.split("/"))

    # -- blobs -------------------------------------------------------------

    def list_blobs(self, prefix: str) -> list[str]:
        if not self.root.is_dir():
            return []
        out: list[str] = []
        for file in self.root.rglob("*"):
            rel = file.relative_to(self.root)
            if any(part.startswith(".") for part in rel.parts):
                continue
            if not file.is_file():
                continue
            key = rel.as_posix()
            if key.startswith(prefix):
                out.append(key)
        return sorted(out)

    def exists(self, path: str) -> bool:
        return self._file(self._check(path)).is_file()

    def create_if_not_exists(self, path: str) -> bool:
        path = self._check(path)
        target = self._file(path)
        with _wrap_os_errors(path):
            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                fd = os.open(target, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                return False
            os.close(fd)
        return True

    def copy_blob(self, src: str, dst: str) -> None:
        self.write_bytes(dst, self.read_bytes(src))

    def delete_blob(self, path: str) -> None:
        path = self._check(path)
        with _wrap_os_errors(path):
            self._file(path).unlink()

    def read_bytes(self, path: str) -> bytes:
        path = self._check(path)
        with _wrap_os_errors(path):
            return self._file(path).read_bytes()

    def read_text(self, path: str) -> str:
        return self.read_bytes(path).decode("utf-8")

    def write_bytes(self, path: str, data: bytes) -> None:
        path = self._check(path)
        with _wrap_os_errors(path):
            atomic_write_bytes(self._file(path), data)

    def write_text(self, path: str, content: str) -> None:
        self.write_bytes(path, content.encode("utf-8"))

    def write_file(self, path: str, local_file: Path) -> None:
        try:
            data = local_file.read_bytes()
        except OSError as e:
            raise BlobStoreError(f"cannot read {local_file}: {e}") from e
        self.write_bytes(path, data)

    # -- leases ------------------------------------------------------------

    def _generations(self, path: str) -> list[tuple[int, Path]]:
        base = self._lease_base(path)
        if not base.parent.is_dir():
            return []
        marker = base.name + ".lease."
        found: list[tuple[int, Path]] = []
        for entry in base.parent.iterdir():
            if not entry.name.startswith(marker):
                continue
            suffix = entry.name[len(marker) :]
            if suffix.isdigit():
                found.append((int(suffix), entry))
        return sorted(found)

    def _read_record(self, file: Path) -> _LeaseRecord | None:
        try:
            data = json.loads(file.read_text(encoding="utf-8"))
            return _LeaseRecord(**data)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError, TypeError) as e:
            raise BlobStoreError(f"corrupt lease file {file}: {e}") from e

    def _current(self, path: str) -> tuple[int, Path, _LeaseRecord] | None:
        gens = self._generations(path)
        if not gens:
            return None
        gen, file = gens[-1]
        record = self._read_record(file)
        if record is None:
            return None
        return gen, file, record

    def _create_exclusive(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".lease.", suffix=".tmp", dir=str(target.parent))
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.link(tmp_name, target)
        finally:
            Path(tmp_name).unlink(missing_ok=True)

    def acquire_lease(self, path: str, duration: float) -> str:
        path = self._check(path)
        if not self._file(path).is_file():
            raise BlobNotFoundError(path)

        with _wrap_os_errors(path):
            gens = self._generations(path)
            gen = 0
            if gens:
                gen = gens[-1][0]
                record = self._read_record(gens[-1][1])
                if record is not None and record.is_active(self._clock()):
                    raise LeaseConflictError(path)

            lease = _LeaseRecord(
                lease_id=uuid4().hex,
                duration=duration,
                expires_at=self._clock() + duration,
            )
            target = self._lease_base(path).with_name(f"{self._lease_base(path).name}.lease.{gen + 1}")
            try:
                self._create_exclusive(target, json.dumps(asdict(lease)).encode("utf-8"))
            except FileExistsError as e:
                raise LeaseConflictError(path) from e

            # A stale listing can recreate a pruned number below the current
            # generation; only the highest generation is a lease.
            if self._generations(path)[-1][0] != gen + 1:
                target.unlink(missing_ok=True)
                raise LeaseConflictError(path)

            for old_gen, old_file in gens:
                if old_gen < gen:
                    old_file.unlink(missing_ok=True)

        return lease.lease_id

    def renew_lease(self, path: str, lease_id: str) -> None:
        path = self._check(path)
        with _wrap_os_errors(path):
            current = self._current(path)
            if current is None:
                raise LeaseMismatchError(path, lease_id)
            gen, file, record = current
            if record.lease_id != lease_id or not record.is_active(self._clock()):
                raise LeaseMismatchError(path, lease_id)

            renewed = _LeaseRecord(
                lease_id=lease_id,
                duration=record.duration,
                expires_at=self._clock() + record.duration,
            )
            atomic_write_bytes(file, json.dumps(asdict(renewed)).encode("utf-8"))

            # A contender may have judged the old expiry stale in between.
            if self._generations(path)[-1][0] != gen:
                raise LeaseMismatchError(path, lease_id)

    def release_lease(self, path: str, lease_id: str) -> None:
        path = self._check(path)
        with _wrap_os_errors(path):
            current = self._current(path)
            if current is None or current[2].lease_id != lease_id:
                raise LeaseMismatchError(path, lease_id)
            _, file, record = current
            released = _LeaseRecord(
                lease_id=lease_id,
                duration=record.duration,
                expires_at=record.expires_at,
                released=True,
            )
            atomic_write_bytes(file, json.dumps(asdict(released)).encode("utf-8"))
