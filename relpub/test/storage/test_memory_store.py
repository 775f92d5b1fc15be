"""Tests for relpub.storage.memory module."""

from __future__ import annotations

from pathlib import Path

import pytest

from relpub.storage.base import (
    BlobNotFoundError,
    BlobStore,
    BlobStoreError,
    LeaseConflictError,
    LeaseMismatchError,
    file_name,
    normalize_path,
)
from relpub.storage.memory import MemoryBlobStore


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestPaths:
    def test_normalize_strips_slashes(self) -> None:
        assert normalize_path("/master/Binaries/1.0/") == "master/Binaries/1.0"

    @pytest.mark.parametrize("bad", ["", "/", "a//b", "a/./b", "a/../b"])
    def test_normalize_rejects(self, bad: str) -> None:
        with pytest.raises(BlobStoreError):
            normalize_path(bad)

    def test_file_name(self) -> None:
        assert file_name("master/Binaries/1.0/dotnet.tar.gz") == "dotnet.tar.gz"


class TestBlobs:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(MemoryBlobStore(), BlobStore)

    def test_write_read_list(self) -> None:
        store = MemoryBlobStore()
        store.write_text("master/Binaries/1.0/b.txt", "b")
        store.write_text("master/Binaries/1.0/a.txt", "a")
        store.write_text("master/Binaries/2.0/c.txt", "c")

        assert store.list_blobs("master/Binaries/1.0/") == [
            "master/Binaries/1.0/a.txt",
            "master/Binaries/1.0/b.txt",
        ]
        assert store.read_text("master/Binaries/1.0/a.txt") == "a"

    def test_create_if_not_exists(self) -> None:
        store = MemoryBlobStore()
        assert store.create_if_not_exists("sem") is True
        store.write_text("sem", "keep")
        assert store.create_if_not_exists("sem") is False
        assert store.read_text("sem") == "keep"

    def test_copy_is_byte_identical(self) -> None:
        store = MemoryBlobStore()
        store.write_bytes("src", b"\x00\xffpayload")
        store.copy_blob("src", "dst")
        assert store.read_bytes("dst") == b"\x00\xffpayload"

    def test_missing_blob(self) -> None:
        store = MemoryBlobStore()
        with pytest.raises(BlobNotFoundError):
            store.read_bytes("nope")
        with pytest.raises(BlobNotFoundError):
            store.copy_blob("nope", "dst")
        with pytest.raises(BlobNotFoundError):
            store.delete_blob("nope")

    def test_write_file_missing_local(self, tmp_path: Path) -> None:
        store = MemoryBlobStore()
        with pytest.raises(BlobStoreError, match="cannot read"):
            store.write_file("x", tmp_path / "missing.bin")

    def test_mutations_recorded(self) -> None:
        store = MemoryBlobStore()
        store.create_if_not_exists("a")
        store.write_text("b", "x")
        store.copy_blob("b", "c")
        store.delete_blob("b")
        assert store.mutations == [("create", "a"), ("write", "b"), ("copy", "c"), ("delete", "b")]


class TestLeases:
    def test_acquire_requires_blob(self) -> None:
        with pytest.raises(BlobNotFoundError):
            MemoryBlobStore().acquire_lease("sem", 60)

    def test_second_acquire_conflicts(self) -> None:
        store = MemoryBlobStore()
        store.create_if_not_exists("sem")
        store.acquire_lease("sem", 60)
        with pytest.raises(LeaseConflictError):
            store.acquire_lease("sem", 60)

    def test_release_allows_reacquire(self) -> None:
        store = MemoryBlobStore()
        store.create_if_not_exists("sem")
        lease = store.acquire_lease("sem", 60)
        store.release_lease("sem", lease)
        assert store.is_leased("sem") is False
        assert store.acquire_lease("sem", 60) != lease

    def test_expired_lease_can_be_taken_over(self) -> None:
        clock = FakeClock()
        store = MemoryBlobStore(clock=clock)
        store.create_if_not_exists("sem")
        stale = store.acquire_lease("sem", 60)

        clock.now += 61
        fresh = store.acquire_lease("sem", 60)

        with pytest.raises(LeaseMismatchError):
            store.renew_lease("sem", stale)
        with pytest.raises(LeaseMismatchError):
            store.release_lease("sem", stale)
        store.release_lease("sem", fresh)

    def test_renew_extends_expiry(self) -> None:
        clock = FakeClock()
        store = MemoryBlobStore(clock=clock)
        store.create_if_not_exists("sem")
        lease = store.acquire_lease("sem", 60)

        clock.now += 50
        store.renew_lease("sem", lease)
        clock.now += 50

        assert store.is_leased("sem") is True

    def test_leased_blob_cannot_be_deleted(self) -> None:
        store = MemoryBlobStore()
        store.create_if_not_exists("sem")
        store.acquire_lease("sem", 60)
        with pytest.raises(LeaseConflictError):
            store.delete_blob("sem")
