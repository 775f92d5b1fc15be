"""Typed configuration loading and access.

This module provides dataclasses for the relpub.toml structure with
full type safety and validation. Every section is optional; missing values
fall back to the defaults below.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_float, get_str, get_str_list, get_table

__all__ = [
    "Config",
    "ConfigError",
    "DebRepoConfig",
    "LeaseConfig",
    "PublishSettings",
    "load_config",
    "load_config_or_default",
    "CONFIG_FILE_NAME",
    "DEFAULT_CHANNEL",
    "DEFAULT_STORAGE_ROOT",
    "DEFAULT_BASE_URL",
    "DEFAULT_LEASE_DURATION",
    "DEFAULT_LEASE_WAIT_TIMEOUT",
    "DEFAULT_LEASE_INITIAL_BACKOFF",
    "DEFAULT_LEASE_MAX_BACKOFF",
    "DEFAULT_DEBREPO_CLIENT",
]

CONFIG_FILE_NAME = "relpub.toml"

DEFAULT_CHANNEL = "master"
DEFAULT_STORAGE_ROOT = ".blobs"
DEFAULT_BASE_URL = "https://dotnetcli.blob.core.windows.net/dotnet"

# Lease timing (seconds)
DEFAULT_LEASE_DURATION = 60.0
DEFAULT_LEASE_WAIT_TIMEOUT = 10 * 60.0
DEFAULT_LEASE_INITIAL_BACKOFF = 1.0
DEFAULT_LEASE_MAX_BACKOFF = 15.0

DEFAULT_DEBREPO_CLIENT: tuple[str, ...] = ("./scripts/publish/repoapi_client.sh",)


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class PublishSettings:
    """Where artifacts are published."""

    channel: str = DEFAULT_CHANNEL
    storage_root: str = DEFAULT_STORAGE_ROOT
    base_url: str = DEFAULT_BASE_URL


@dataclass(frozen=True, slots=True)
class LeaseConfig:
    """Lease timing for the publish semaphore.

    duration: how long a lease lives before it must be renewed.
    wait_timeout: total time an agent waits for a busy semaphore.
    initial_backoff / max_backoff: retry delay bounds while waiting.
    """

    duration: float = DEFAULT_LEASE_DURATION
    wait_timeout: float = DEFAULT_LEASE_WAIT_TIMEOUT
    initial_backoff: float = DEFAULT_LEASE_INITIAL_BACKOFF
    max_backoff: float = DEFAULT_LEASE_MAX_BACKOFF


@dataclass(frozen=True, slots=True)
class DebRepoConfig:
    """Debian repository client command (argv prefix)."""

    client: tuple[str, ...] = DEFAULT_DEBREPO_CLIENT


def _number(table: StrDict, section: str, key: str, default: float) -> float:
    """Numeric setting; absent means default, present but non-numeric is an error."""
    if key not in table:
        return default
    value = get_float(table, key)
    if value is None:
        raise ValueError(f"{section}.{key} must be a number, got {table[key]!r}")
    return value


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    publish: PublishSettings = field(default_factory=PublishSettings)
    lease: LeaseConfig = field(default_factory=LeaseConfig)
    debrepo: DebRepoConfig = field(default_factory=DebRepoConfig)
    # None means the built-in platform badge set.
    badges: tuple[str, ...] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: If a value is present but malformed.
        """
        publish: StrDict = get_table(data, "publish") or {}
        lease: StrDict = get_table(data, "lease") or {}
        badges: StrDict = get_table(data, "badges") or {}
        debrepo: StrDict = get_table(data, "debrepo") or {}

        lease_config = LeaseConfig(
            duration=_number(lease, "lease", "duration", DEFAULT_LEASE_DURATION),
            wait_timeout=_number(lease, "lease", "wait_timeout", DEFAULT_LEASE_WAIT_TIMEOUT),
            initial_backoff=_number(lease, "lease", "initial_backoff", DEFAULT_LEASE_INITIAL_BACKOFF),
            max_backoff=_number(lease, "lease", "max_backoff", DEFAULT_LEASE_MAX_BACKOFF),
        )
        if lease_config.duration <= 0 or lease_config.wait_timeout < 0:
            raise ValueError("lease.duration must be > 0 and lease.wait_timeout >= 0")
        if lease_config.initial_backoff <= 0:
            raise ValueError("lease.initial_backoff must be > 0")
        if lease_config.max_backoff < lease_config.initial_backoff:
            raise ValueError("lease.max_backoff must be >= lease.initial_backoff")

        platforms: tuple[str, ...] | None = None
        if "platforms" in badges:
            items = get_str_list(badges, "platforms")
            if not items:
                raise ValueError("badges.platforms must be a non-empty list of strings")
            if len(set(items)) != len(items):
                raise ValueError("badges.platforms contains duplicates")
            platforms = tuple(items)

        client: tuple[str, ...] = DEFAULT_DEBREPO_CLIENT
        if "client" in debrepo:
            argv = get_str_list(debrepo, "client")
            if not argv:
                raise ValueError("debrepo.client must be a non-empty list of strings")
            client = tuple(argv)

        return cls(
            publish=PublishSettings(
                channel=get_str(publish, "channel") or DEFAULT_CHANNEL,
                storage_root=get_str(publish, "storage_root") or DEFAULT_STORAGE_ROOT,
                base_url=(get_str(publish, "base_url") or DEFAULT_BASE_URL).rstrip("/"),
            ),
            lease=lease_config,
            debrepo=DebRepoConfig(client=client),
            badges=platforms,
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to relpub.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Load config if the file exists, otherwise return the defaults.

    A present but broken file is still an error.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)
