from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True, slots=True)
class PublishContext:
    """Everything one build agent knows about the release it is publishing.

    Owned by the caller and passed explicitly to every publishing step.
    """

    channel: str
    cli_version: str
    sharedfx_version: str
    badge: str  # current agent, e.g. "Ubuntu_x64"
    commit_hash: str = ""

    @property
    def paths(self) -> BlobPaths:
        return BlobPaths(self.channel)


@dataclass(frozen=True, slots=True)
class BlobPaths:
    """Blob layout for one channel."""

    channel: str

    def versioned_prefix(self, version: str) -> str:
        return f"{self.channel}/Binaries/{version}/"

    def binary(self, version: str, filename: str) -> str:
        return f"{self.versioned_prefix(version)}{filename}"

    def installer(self, version: str, filename: str) -> str:
        return f"{self.channel}/Installers/{version}/{filename}"

    @property
    def latest_prefix(self) -> str:
        return f"{self.channel}/Binaries/Latest/"

    def latest(self, filename: str) -> str:
        return f"{self.latest_prefix}{filename}"

    @property
    def semaphore(self) -> str:
        return f"{self.channel}/Binaries/publishSemaphore"

    def marker(self, version: str) -> str:
        return f"{self.latest_prefix}{version}"

    def dnvm_cli(self, moniker: str) -> str:
        return f"{self.channel}/dnvm/latest.{moniker}.version"

    def dnvm_sharedfx(self, moniker: str) -> str:
        return f"{self.channel}/dnvm/latest.sharedfx.{moniker}.version"


@dataclass(frozen=True, slots=True)
class CompletionReport:
    version: str
    blobs: tuple[str, ...]
    present: tuple[str, ...]
    missing: tuple[str, ...]

    @property
    def complete(self) -> bool:
        return not self.missing


class PromotionOutcome(Enum):
    INCOMPLETE = "incomplete"
    ALREADY_PROMOTED = "already_promoted"
    PROMOTED = "promoted"
    PLANNED = "planned"  # dry run

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class PromotionReport:
    outcome: PromotionOutcome
    version: str
    completion: CompletionReport
    deleted: tuple[str, ...] = ()
    copied: tuple[tuple[str, str], ...] = ()
    descriptors: tuple[str, ...] = ()
