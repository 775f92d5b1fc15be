"""Platform and architecture detection.

Build agents identify themselves by a badge name such as ``Ubuntu_x64`` or
``Windows_x86``. This module detects the operating system, CPU architecture and
Linux distribution needed to derive that name. Detection is lazy and cached.
"""

from __future__ import annotations

import os as _os
import platform as _platform
import sys as _sys
from dataclasses import dataclass
from enum import Enum, auto
from functools import lru_cache
from pathlib import Path

__all__ = [
    "Platform",
    "Arch",
    "LinuxDistro",
    "PlatformInfo",
    "detect",
    "detect_arch",
    "detect_linux_distro",
    "detect_platform",
    "parse_os_release_id",
]


class Platform(Enum):
    """Operating system platform."""

    LINUX = auto()
    MACOS = auto()
    WINDOWS = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()


class Arch(Enum):
    """CPU architecture."""

    X86 = auto()
    X64 = auto()
    ARM64 = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()


class LinuxDistro(Enum):
    """Linux distribution, as far as release builds care."""

    UBUNTU = auto()
    DEBIAN = auto()
    RHEL = auto()
    CENTOS = auto()
    FEDORA = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def moniker(self) -> str:
        """Name used in build badges."""
        return {
            LinuxDistro.UBUNTU: "Ubuntu",
            LinuxDistro.DEBIAN: "Debian",
            LinuxDistro.RHEL: "RHEL",
            LinuxDistro.CENTOS: "CentOS",
            LinuxDistro.FEDORA: "Fedora",
            LinuxDistro.UNKNOWN: "Linux",
        }[self]


@dataclass(frozen=True, slots=True)
class PlatformInfo:
    """Complete platform information.

    Use the `detect()` function to get an instance for the running host.
    """

    platform: Platform
    arch: Arch
    distro: LinuxDistro

    @property
    def os_moniker(self) -> str:
        match self.platform:
            case Platform.WINDOWS:
                return "Windows"
            case Platform.MACOS:
                return "OSX"
            case Platform.LINUX:
                return self.distro.moniker
            case _:
                return "Unknown"

    @property
    def badge_name(self) -> str:
        """Badge identifier for this host, e.g. ``RHEL_x64``."""
        return f"{self.os_moniker}_{self.arch}"

    def __str__(self) -> str:
        if self.platform == Platform.LINUX and self.distro != LinuxDistro.UNKNOWN:
            return f"{self.platform}-{self.distro}-{self.arch}"
        return f"{self.platform}-{self.arch}"


@lru_cache(maxsize=1)
def detect_platform() -> Platform:
    """Detect the current operating system (cached)."""
    # NOTE: avoid platform.system() on Windows, it may query WMI.
    system = _sys.platform.lower()
    if system.startswith("linux"):
        return Platform.LINUX
    if system.startswith("darwin"):
        return Platform.MACOS
    if system.startswith(("win32", "cygwin", "msys")):
        return Platform.WINDOWS
    return Platform.UNKNOWN


def _machine_to_arch(machine: str) -> Arch:
    machine = machine.lower()
    if machine in ("x86_64", "amd64"):
        return Arch.X64
    if machine in ("x86", "i386", "i686"):
        return Arch.X86
    if machine in ("aarch64", "arm64"):
        return Arch.ARM64
    return Arch.UNKNOWN


@lru_cache(maxsize=1)
def detect_arch() -> Arch:
    """Detect the current CPU architecture (cached)."""
    if detect_platform() == Platform.WINDOWS:
        # A 32-bit process on 64-bit Windows sees PROCESSOR_ARCHITECTURE=x86.
        # Windows_x86 builds run exactly that way, so prefer the process view.
        machine = _os.environ.get("PROCESSOR_ARCHITECTURE") or ""
    else:
        machine = _platform.machine()
    return _machine_to_arch(machine)


def parse_os_release_id(content: str) -> LinuxDistro:
    """Map the ID field of /etc/os-release content to a LinuxDistro."""
    distro_id = ""
    for line in content.splitlines():
        key, sep, value = line.partition("=")
        if sep and key.strip() == "ID":
            distro_id = value.strip().strip('"').strip("'").lower()
            break

    return {
        "ubuntu": LinuxDistro.UBUNTU,
        "debian": LinuxDistro.DEBIAN,
        "rhel": LinuxDistro.RHEL,
        "centos": LinuxDistro.CENTOS,
        "fedora": LinuxDistro.FEDORA,
    }.get(distro_id, LinuxDistro.UNKNOWN)


def _read_os_release() -> str | None:
    try:
        return Path("/etc/os-release").read_text(encoding="utf-8")
    except OSError:
        return None


@lru_cache(maxsize=1)
def detect_linux_distro() -> LinuxDistro:
    """Detect the Linux distribution (cached).

    Returns LinuxDistro.UNKNOWN when not on Linux, when /etc/os-release is
    unreadable, or when the distribution is not one we build for.
    """
    if detect_platform() != Platform.LINUX:
        return LinuxDistro.UNKNOWN

    content = _read_os_release()
    if content is None:
        return LinuxDistro.UNKNOWN
    return parse_os_release_id(content)


@lru_cache(maxsize=1)
def detect() -> PlatformInfo:
    """Detect complete platform information (cached)."""
    return PlatformInfo(
        platform=detect_platform(),
        arch=detect_arch(),
        distro=detect_linux_distro(),
    )
