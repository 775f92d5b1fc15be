"""Tests for relpub.storage.local module."""

from __future__ import annotations

from pathlib import Path

import pytest

from relpub.storage.base import (
    BlobNotFoundError,
    BlobStore,
    BlobStoreError,
    LeaseConflictError,
    LeaseMismatchError,
)
from relpub.storage.local import LocalBlobStore


class FakeClock:
    def __init__(self) -> None:
        self.now = 1_700_000_000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path: Path, clock: FakeClock) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "blobs", clock=clock)


class TestBlobs:
    def test_satisfies_protocol(self, store: LocalBlobStore) -> None:
        assert isinstance(store, BlobStore)

    def test_list_on_missing_root(self, store: LocalBlobStore) -> None:
        assert store.list_blobs("") == []

    def test_write_read_copy_delete(self, store: LocalBlobStore, tmp_path: Path) -> None:
        store.write_text("master/Binaries/1.0/a.txt", "alpha")
        store.copy_blob("master/Binaries/1.0/a.txt", "master/Binaries/Latest/a.txt")

        assert (tmp_path / "blobs" / "master" / "Binaries" / "Latest" / "a.txt").read_text() == "alpha"
        assert store.list_blobs("master/Binaries/") == [
            "master/Binaries/1.0/a.txt",
            "master/Binaries/Latest/a.txt",
        ]

        store.delete_blob("master/Binaries/1.0/a.txt")
        assert store.exists("master/Binaries/1.0/a.txt") is False

    def test_write_file(self, store: LocalBlobStore, tmp_path: Path) -> None:
        local = tmp_path / "dotnet.tar.gz"
        local.write_bytes(b"\x1f\x8b")
        store.write_file("master/Binaries/1.0/dotnet.tar.gz", local)
        assert store.read_bytes("master/Binaries/1.0/dotnet.tar.gz") == b"\x1f\x8b"

    def test_missing_blob(self, store: LocalBlobStore) -> None:
        with pytest.raises(BlobNotFoundError):
            store.read_text("master/nope")
        with pytest.raises(BlobNotFoundError):
            store.delete_blob("master/nope")

    def test_dot_segments_rejected(self, store: LocalBlobStore) -> None:
        with pytest.raises(BlobStoreError):
            store.write_text(".leases/x", "nope")

    def test_create_if_not_exists(self, store: LocalBlobStore) -> None:
        assert store.create_if_not_exists("master/Binaries/publishSemaphore") is True
        assert store.create_if_not_exists("master/Binaries/publishSemaphore") is False
        assert store.read_text("master/Binaries/publishSemaphore") == ""


class TestLeases:
    SEM = "master/Binaries/publishSemaphore"

    def test_lease_files_hidden_from_listing(self, store: LocalBlobStore) -> None:
        store.create_if_not_exists(self.SEM)
        store.acquire_lease(self.SEM, 60)
        assert store.list_blobs("") == [self.SEM]

    def test_acquire_requires_blob(self, store: LocalBlobStore) -> None:
        with pytest.raises(BlobNotFoundError):
            store.acquire_lease(self.SEM, 60)

    def test_conflict_across_instances(self, tmp_path: Path, clock: FakeClock) -> None:
        first = LocalBlobStore(tmp_path, clock=clock)
        second = LocalBlobStore(tmp_path, clock=clock)
        first.create_if_not_exists(self.SEM)

        lease = first.acquire_lease(self.SEM, 60)
        with pytest.raises(LeaseConflictError):
            second.acquire_lease(self.SEM, 60)

        first.release_lease(self.SEM, lease)
        second.acquire_lease(self.SEM, 60)

    def test_takeover_after_expiry(self, store: LocalBlobStore, clock: FakeClock) -> None:
        store.create_if_not_exists(self.SEM)
        stale = store.acquire_lease(self.SEM, 60)

        clock.now += 61
        fresh = store.acquire_lease(self.SEM, 60)

        with pytest.raises(LeaseMismatchError):
            store.renew_lease(self.SEM, stale)
        with pytest.raises(LeaseMismatchError):
            store.release_lease(self.SEM, stale)
        store.renew_lease(self.SEM, fresh)
        store.release_lease(self.SEM, fresh)

    def test_renew_keeps_lease_alive(self, store: LocalBlobStore, clock: FakeClock) -> None:
        store.create_if_not_exists(self.SEM)
        lease = store.acquire_lease(self.SEM, 60)

        clock.now += 50
        store.renew_lease(self.SEM, lease)
        clock.now += 50

        with pytest.raises(LeaseConflictError):
            store.acquire_lease(self.SEM, 60)

    def test_renew_after_expiry_fails(self, store: LocalBlobStore, clock: FakeClock) -> None:
        store.create_if_not_exists(self.SEM)
        lease = store.acquire_lease(self.SEM, 60)
        clock.now += 120
        with pytest.raises(LeaseMismatchError):
            store.renew_lease(self.SEM, lease)

    def test_old_generations_pruned(self, store: LocalBlobStore, tmp_path: Path) -> None:
        store.create_if_not_exists(self.SEM)
        for _ in range(4):
            store.release_lease(self.SEM, store.acquire_lease(self.SEM, 60))

        lease_dir = tmp_path / "blobs" / ".leases" / "master" / "Binaries"
        names = sorted(p.name for p in lease_dir.iterdir() if ".lease." in p.name and not p.name.startswith("."))
        assert names == ["publishSemaphore.lease.3", "publishSemaphore.lease.4"]

    def test_stale_listing_cannot_take_a_held_lease(
        self, store: LocalBlobStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        store.create_if_not_exists(self.SEM)
        store.release_lease(self.SEM, store.acquire_lease(self.SEM, 60))
        stale = store._generations(self.SEM)

        for _ in range(2):
            store.release_lease(self.SEM, store.acquire_lease(self.SEM, 60))
        held = store.acquire_lease(self.SEM, 60)

        real_generations = LocalBlobStore._generations
        calls = {"n": 0}

        def generations_once_stale(self: LocalBlobStore, path: str) -> list[tuple[int, Path]]:
            calls["n"] += 1
            if calls["n"] == 1:
                return stale
            return real_generations(self, path)

        monkeypatch.setattr(LocalBlobStore, "_generations", generations_once_stale)

        with pytest.raises(LeaseConflictError):
            store.acquire_lease(self.SEM, 60)

        monkeypatch.undo()
        store.renew_lease(self.SEM, held)
        lease_dir = store.root / ".leases" / "master" / "Binaries"
        assert not (lease_dir / "publishSemaphore.lease.2").exists()
        store.release_lease(self.SEM, held)
