"""Completion detection from platform badges.

Every build agent uploads a small ``.svg`` badge into the version folder as
its last step. A version is complete once a badge for every registered
platform is present. Detection only lists blobs; it never writes.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from relpub.services.publish.config import BADGE_SUFFIX, DEFAULT_PLATFORM_BADGES
from relpub.services.publish.errors import ConfigurationError
from relpub.services.publish.model import CompletionReport, PublishContext
from relpub.storage.base import BlobStore, file_name


@dataclass(frozen=True, slots=True)
class BadgeRule:
    platform: str
    suffix: str = BADGE_SUFFIX

    def matches(self, name: str) -> bool:
        return name.startswith(self.platform) and name.endswith(self.suffix)


@dataclass(frozen=True, slots=True)
class BadgeRegistry:
    """Closed set of platforms that must publish, in match order."""

    rules: tuple[BadgeRule, ...]

    def __post_init__(self) -> None:
        names = [r.platform for r in self.rules]
        if not names:
            raise ValueError("badge registry must not be empty")
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate platform badges: {names}")

    @classmethod
    def from_platforms(cls, platforms: Iterable[str] | None = None) -> BadgeRegistry:
        items = DEFAULT_PLATFORM_BADGES if platforms is None else tuple(platforms)
        return cls(rules=tuple(BadgeRule(p) for p in items))

    @property
    def platforms(self) -> tuple[str, ...]:
        return tuple(r.platform for r in self.rules)

    def __contains__(self, platform: object) -> bool:
        return platform in self.platforms

    def match(self, name: str) -> str | None:
        """Platform whose badge this file name is, first rule wins."""
        for rule in self.rules:
            if rule.matches(name):
                return rule.platform
        return None

    def require(self, platform: str) -> None:
        if platform not in self:
            raise ConfigurationError(
                f"platform badge {platform!r} is not registered "
                f"(known: {', '.join(self.platforms)}); "
                "a new build platform was added without registering its badge"
            )


def check_all_published(
    store: BlobStore,
    ctx: PublishContext,
    registry: BadgeRegistry | None = None,
) -> CompletionReport:
    """Report which platform badges exist for ``ctx.cli_version``.

    Raises:
        ConfigurationError: If the current agent's badge is not registered.
    """
    registry = registry or BadgeRegistry.from_platforms()
    registry.require(ctx.badge)

    found = dict.fromkeys(registry.platforms, False)
    blobs = tuple(store.list_blobs(ctx.paths.versioned_prefix(ctx.cli_version)))
    for blob in blobs:
        platform = registry.match(file_name(blob))
        if platform is not None:
            found[platform] = True

    return CompletionReport(
        version=ctx.cli_version,
        blobs=blobs,
        present=tuple(p for p, ok in found.items() if ok),
        missing=tuple(p for p, ok in found.items() if not ok),
    )
