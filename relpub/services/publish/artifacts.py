"""Per-agent artifact upload.

Archives, packages and the version badge go to the version folder
``{channel}/Binaries/{version}/``; installers go to
``{channel}/Installers/{version}/``. The badge is uploaded last because its
presence tells the other agents this platform is done.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from relpub.output.console import ConsoleProtocol
from relpub.services.publish.model import PublishContext
from relpub.storage.base import BlobStore


class ArtifactKind(Enum):
    ARCHIVE = "archive"
    INSTALLER = "installer"
    PACKAGE = "package"
    BADGE = "badge"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Artifact:
    path: Path
    kind: ArtifactKind
    version: str


class ArtifactPublisher:
    def __init__(
        self,
        store: BlobStore,
        ctx: PublishContext,
        *,
        base_url: str,
        console: ConsoleProtocol,
    ) -> None:
        self._store = store
        self._ctx = ctx
        self._base_url = base_url.rstrip("/")
        self._console = console

    def destination(self, artifact: Artifact) -> str:
        paths = self._ctx.paths
        if artifact.kind is ArtifactKind.INSTALLER:
            return paths.installer(artifact.version, artifact.path.name)
        return paths.binary(artifact.version, artifact.path.name)

    def installer_upload_url(self, installer: Path, version: str) -> str:
        """Public download URL of an uploaded installer."""
        return f"{self._base_url}/{self._ctx.paths.installer(version, installer.name)}"

    def publish(self, artifact: Artifact) -> str:
        """Upload one artifact and return its blob path.

        Raises:
            BlobStoreError: If the local file cannot be read or the upload fails.
        """
        dest = self.destination(artifact)
        self._console.print(f"publishing {artifact.kind} {artifact.path.name} to {dest}")
        self._store.write_file(dest, artifact.path)
        return dest

    def publish_all(self, artifacts: Sequence[Artifact]) -> list[str]:
        """Upload artifacts in order, badges after everything else."""
        ordered = sorted(artifacts, key=lambda a: a.kind is ArtifactKind.BADGE)
        return [self.publish(a) for a in ordered]
