"""Error types for publishing.

Exceptions are raised inside the protocol where a failure must abort the
current step. The service layer turns them into ``PublishError`` values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

PublishErrorKind = Literal[
    "config_error",
    "lease_timeout",
    "coordination_failure",
    "upload_failed",
    "package_publish_failed",
    "network_failure",
    "publish_disabled",
]


@dataclass(frozen=True, slots=True)
class PublishError:
    kind: PublishErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


class ConfigurationError(Exception):
    """The build agent is not set up to take part in publishing.

    Raised when the current platform has no registered badge: a new build
    platform was added without registering its badge, so completion could
    never be detected correctly.
    """


class LeaseTimeoutError(Exception):
    def __init__(self, path: str, waited: float, attempts: int) -> None:
        super().__init__(
            f"could not lease {path} within {waited:.0f}s ({attempts} attempts)"
        )
        self.path = path
        self.waited = waited
        self.attempts = attempts


class PromotionError(Exception):
    """A blob operation failed while promoting a version to Latest.

    ``stage`` is one of ``clear``, ``marker``, ``copy``, ``descriptors``.
    """

    def __init__(self, version: str, stage: str, cause: Exception) -> None:
        super().__init__(f"promotion of {version} failed during {stage}: {cause}")
        self.version = version
        self.stage = stage
        self.cause = cause

    @property
    def marker_written(self) -> bool:
        return self.stage in ("copy", "descriptors")
