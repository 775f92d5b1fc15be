"""Tests for per-agent artifact upload."""

from __future__ import annotations

from pathlib import Path

import pytest

from relpub.output.console import MockConsole
from relpub.services.publish.artifacts import Artifact, ArtifactKind, ArtifactPublisher
from relpub.services.publish.model import PublishContext
from relpub.storage.base import BlobStoreError
from relpub.storage.memory import MemoryBlobStore

CLI = "1.0.0-preview2-003121"


def _ctx() -> PublishContext:
    return PublishContext(channel="rel-1.0.0", cli_version=CLI, sharedfx_version="1.0.0", badge="OSX_x64")


def _file(tmp_path: Path, name: str, data: bytes = b"data") -> Path:
    path = tmp_path / name
    path.write_bytes(data)
    return path


@pytest.fixture
def publisher_and_store() -> tuple[ArtifactPublisher, MemoryBlobStore]:
    store = MemoryBlobStore()
    publisher = ArtifactPublisher(
        store, _ctx(), base_url="https://cdn.example.com/dotnet/", console=MockConsole()
    )
    return publisher, store


class TestDestination:
    def test_archive_goes_to_binaries(self, publisher_and_store: tuple[ArtifactPublisher, MemoryBlobStore], tmp_path: Path) -> None:
        publisher, _ = publisher_and_store
        artifact = Artifact(tmp_path / "dotnet.tar.gz", ArtifactKind.ARCHIVE, CLI)
        assert publisher.destination(artifact) == f"rel-1.0.0/Binaries/{CLI}/dotnet.tar.gz"

    def test_installer_goes_to_installers(self, publisher_and_store: tuple[ArtifactPublisher, MemoryBlobStore], tmp_path: Path) -> None:
        publisher, _ = publisher_and_store
        artifact = Artifact(tmp_path / "dotnet.pkg", ArtifactKind.INSTALLER, CLI)
        assert publisher.destination(artifact) == f"rel-1.0.0/Installers/{CLI}/dotnet.pkg"

    def test_installer_upload_url(self, publisher_and_store: tuple[ArtifactPublisher, MemoryBlobStore], tmp_path: Path) -> None:
        publisher, _ = publisher_and_store
        url = publisher.installer_upload_url(tmp_path / "dotnet.deb", CLI)
        assert url == f"https://cdn.example.com/dotnet/rel-1.0.0/Installers/{CLI}/dotnet.deb"


class TestPublish:
    def test_badge_uploaded_last(self, publisher_and_store: tuple[ArtifactPublisher, MemoryBlobStore], tmp_path: Path) -> None:
        publisher, store = publisher_and_store
        artifacts = [
            Artifact(_file(tmp_path, "OSX_x64_badge.svg"), ArtifactKind.BADGE, CLI),
            Artifact(_file(tmp_path, "dotnet.tar.gz"), ArtifactKind.ARCHIVE, CLI),
            Artifact(_file(tmp_path, "dotnet.pkg"), ArtifactKind.INSTALLER, CLI),
        ]

        publisher.publish_all(artifacts)

        assert store.mutations[-1] == ("write", f"rel-1.0.0/Binaries/{CLI}/OSX_x64_badge.svg")
        assert len(store.mutations) == 3

    def test_content_is_uploaded(self, publisher_and_store: tuple[ArtifactPublisher, MemoryBlobStore], tmp_path: Path) -> None:
        publisher, store = publisher_and_store
        dest = publisher.publish(Artifact(_file(tmp_path, "a.zip", b"PK\x03\x04"), ArtifactKind.PACKAGE, CLI))
        assert store.read_bytes(dest) == b"PK\x03\x04"

    def test_missing_file_raises(self, publisher_and_store: tuple[ArtifactPublisher, MemoryBlobStore], tmp_path: Path) -> None:
        publisher, _ = publisher_and_store
        with pytest.raises(BlobStoreError):
            publisher.publish(Artifact(tmp_path / "missing.zip", ArtifactKind.ARCHIVE, CLI))
